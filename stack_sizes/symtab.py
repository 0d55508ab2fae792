import logging
import re
from elftools.elf.sections import StringTableSection, SymbolTableSection
from .errors import MalformedInput, UnresolvedName
from .model import Function

logger = logging.getLogger(__name__)

# Size of an Elf32_Sym / Elf64_Sym entry.
SYMBOL_ENTRY_SIZES = {32: 16, 64: 24}

# ARM mapping symbols mark the start of ARM code ($a), Thumb code ($t) and
# literal data ($d) inside a function. They are not aliases.
MAPPING_TAG_RE = re.compile(r"\$[atd](\.[0-9]+)?")


def is_mapping_tag(name):
    return MAPPING_TAG_RE.fullmatch(name) is not None


def find_function(defined, address):
    # Try with the thumb bit both set and clear.
    func = defined.get(address | 1)
    if func is None:
        func = defined.get(address & ~1)
    return func


def check_symbol_table(symtab, elfclass):
    if not isinstance(symtab, SymbolTableSection):
        raise MalformedInput("not a symbol table", symtab.name)
    entsize = symtab["sh_entsize"]
    if entsize != SYMBOL_ENTRY_SIZES[elfclass]:
        raise MalformedInput(
            f"unexpected symbol entry size {entsize} for ELF{elfclass}", symtab.name)
    if not isinstance(symtab.stringtable, StringTableSection):
        raise MalformedInput("symbol table is not linked to a string table", symtab.name)


def symbol_name(strtab, symbol):
    """Returns the name of ``symbol`` or None if it cannot be read.

    ``strtab`` is the raw string table. A name must start inside it, end with
    a NUL inside it and be valid UTF-8.
    """
    start = symbol["st_name"]
    end = strtab.find(b"\0", start)
    if start >= len(strtab) or end < 0:
        return None
    try:
        return strtab[start:end].decode("utf-8")
    except UnicodeDecodeError:
        return None


def parse_symbol_table(symtab):
    """Collects defined and undefined functions from a symbol table.

    Untyped symbols sharing an address with a defined function are added to
    that function's names. Returns ``(undefined, defined)``.
    """
    defined = {}
    maybe_aliases = {}
    undefined = set()
    strtab = symtab.stringtable.data()

    for index, symbol in enumerate(symtab.iter_symbols()):
        ty = symbol["st_info"]["type"]
        value = symbol["st_value"]
        size = symbol["st_size"]

        if ty == "STT_FUNC":
            name = symbol_name(strtab, symbol)
            if name is None:
                raise UnresolvedName(
                    f"symbol #{index} has no readable name (st_name={symbol['st_name']:#x})",
                    index, symtab.name)

            if value == 0 and size == 0:
                undefined.add(name)
            else:
                defined.setdefault(value, Function(size)).names.append(name)
        elif ty == "STT_NOTYPE":
            name = symbol_name(strtab, symbol)
            if name and not is_mapping_tag(name):
                maybe_aliases.setdefault(value, []).append(name)

    for value, aliases in sorted(maybe_aliases.items()):
        func = find_function(defined, value)
        if func is None:
            logger.debug(f"dropping aliases at {value:#x}: {' '.join(aliases)}")
            continue
        func.names.extend(aliases)

    return undefined, dict(sorted(defined.items()))
