import io
import logging
import struct
from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile
from .errors import MalformedInput
from .leb128 import decode_uleb128
from .model import Functions
from .symtab import check_symbol_table, find_function, parse_symbol_table

logger = logging.getLogger(__name__)

SYMTAB_SECTION = ".symtab"
# Emitted by rustc/LLVM with `-Z emit-stack-sizes`.
STACK_SIZES_SECTION = ".stack_sizes"


def iter_stack_sizes(data, have_32_bit_addresses):
    """Yields ``(address, stack)`` records of a .stack_sizes section in file order."""
    fmt = "<I" if have_32_bit_addresses else "<Q"
    addr_len = struct.calcsize(fmt)
    index = 0
    while index < len(data):
        if index + addr_len > len(data):
            raise MalformedInput("truncated stack size record",
                                 STACK_SIZES_SECTION, index)
        addr = struct.unpack_from(fmt, data, index)[0]
        stack, index = decode_uleb128(data, index + addr_len, STACK_SIZES_SECTION)
        yield addr, stack


def correlate(functions, records):
    matched = 0
    for addr, stack in records:
        func = find_function(functions.defined, addr)
        if func is None:
            # Removed or merged by the linker after code generation.
            logger.debug(f"no function at {addr:#x} (stack={stack})")
            continue
        if func.stack is not None:
            logger.debug(f"ignoring second record at {addr:#x} for {func.names} "
                         f"(stack={stack}, kept {func.stack})")
            continue
        func.stack = stack
        matched += 1
    return matched


def analyze_executable(data):
    """Parses an executable ELF image and returns its functions and their stack usage."""
    try:
        elf = ELFFile(io.BytesIO(data))
        return analyze_elf(elf)
    except ELFError as e:
        raise MalformedInput(str(e))


def analyze_elf(elf):
    have_32_bit_addresses = elf.elfclass == 32

    symtab = elf.get_section_by_name(SYMTAB_SECTION)
    if symtab is not None:
        check_symbol_table(symtab, elf.elfclass)
        undefined, defined = parse_symbol_table(symtab)
    else:
        logger.info(f"{SYMTAB_SECTION} not found")
        undefined, defined = set(), {}

    functions = Functions(have_32_bit_addresses, undefined, defined)

    stack_sizes = elf.get_section_by_name(STACK_SIZES_SECTION)
    if stack_sizes is None:
        logger.info(f"{STACK_SIZES_SECTION} not found (build with -Z emit-stack-sizes)")
        return functions

    matched = correlate(functions,
                        iter_stack_sizes(stack_sizes.data(), have_32_bit_addresses))
    logger.info(f"{len(defined)} functions, {len(undefined)} undefined, "
                f"{matched} with a known stack size")
    return functions
