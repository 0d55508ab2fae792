import io
import pytest
from elftools.elf.elffile import ELFFile
from stack_sizes.errors import MalformedInput, UnresolvedName
from stack_sizes.model import Function
from stack_sizes.symtab import find_function, is_mapping_tag, parse_symbol_table
from stack_sizes import analyze_executable
from elfimage import SHT_PROGBITS, build_elf


def parse(symbols, elfclass=64):
    elf = ELFFile(io.BytesIO(build_elf(symbols, elfclass=elfclass)))
    return parse_symbol_table(elf.get_section_by_name(".symtab"))


@pytest.mark.parametrize("name", ["$a", "$t", "$d", "$a.0", "$t.12", "$d.345"])
def test_mapping_tags(name):
    assert is_mapping_tag(name)


@pytest.mark.parametrize("name", ["$x", "$a.", "$t.x", "$d.1a", "a", "$a1", "$$a", ""])
def test_not_mapping_tags(name):
    assert not is_mapping_tag(name)


def test_find_function_prefers_odd_address():
    odd, even = Function(4, ["odd"]), Function(4, ["even"])
    defined = {0x1000: even, 0x1001: odd}
    assert find_function(defined, 0x1000) is odd
    assert find_function(defined, 0x1001) is odd


def test_find_function_clears_low_bit():
    func = Function(8, ["f"])
    assert find_function({0x2000: func}, 0x2001) is func
    assert find_function({0x2000: func}, 0x2000) is func
    assert find_function({0x2000: func}, 0x2002) is None


def test_defined_and_undefined():
    undefined, defined = parse([
        ("foo", 0x1000, 16, "func"),
        ("extern_fn", 0, 0, "func"),
        ("data", 0x3000, 4, "object"),
    ])
    assert undefined == {"extern_fn"}
    assert list(defined) == [0x1000]
    assert defined[0x1000].names == ["foo"]
    assert defined[0x1000].size == 16
    assert defined[0x1000].stack is None


def test_same_address_functions_share_names():
    _, defined = parse([
        ("first", 0x1000, 16, "func"),
        ("other", 0x2000, 8, "func"),
        ("second", 0x1000, 32, "func"),
        ("third", 0x1000, 16, "func"),
    ])
    assert defined[0x1000].names == ["first", "second", "third"]
    # The first symbol decides the size.
    assert defined[0x1000].size == 16


def test_defined_is_sorted_by_address():
    _, defined = parse([
        ("c", 0x3000, 4, "func"),
        ("a", 0x1000, 4, "func"),
        ("b", 0x2000, 4, "func"),
    ])
    assert list(defined) == [0x1000, 0x2000, 0x3000]


def test_zero_address_with_size_is_defined():
    undefined, defined = parse([("reset", 0, 64, "func")])
    assert undefined == set()
    assert defined[0].names == ["reset"]


def test_aliases_follow_function_names():
    _, defined = parse([
        ("alias", 0x1000, 0, "notype"),
        ("foo", 0x1000, 16, "func"),
        ("bar", 0x1000, 16, "func"),
    ])
    assert defined[0x1000].names == ["foo", "bar", "alias"]


def test_alias_of_thumb_function():
    # Thumb functions have the low bit set, labels don't.
    _, defined = parse([
        ("foo", 0x1001, 16, "func"),
        ("foo_label", 0x1000, 0, "notype"),
    ], elfclass=32)
    assert defined[0x1001].names == ["foo", "foo_label"]


def test_alias_low_bit_set():
    _, defined = parse([
        ("foo", 0x1000, 16, "func"),
        ("odd_alias", 0x1001, 0, "notype"),
    ])
    assert defined[0x1000].names == ["foo", "odd_alias"]


def test_mapping_tags_are_not_aliases():
    _, defined = parse([
        ("foo", 0x1001, 16, "func"),
        ("$t", 0x1000, 0, "notype"),
        ("$d.1", 0x1000, 0, "notype"),
        ("$a", 0x1000, 0, "notype"),
    ], elfclass=32)
    assert defined[0x1001].names == ["foo"]


def test_unmatched_aliases_are_dropped():
    _, defined = parse([
        ("foo", 0x1000, 16, "func"),
        ("lonely", 0x5000, 0, "notype"),
    ])
    assert list(defined) == [0x1000]
    assert defined[0x1000].names == ["foo"]


def test_unresolved_function_name():
    with pytest.raises(UnresolvedName) as e:
        analyze_executable(build_elf([
            ("foo", 0x1000, 16, "func"),
            (0x10000, 0x2000, 16, "func"),
        ]))
    assert e.value.index == 2
    assert e.value.section == ".symtab"


def test_unresolved_untyped_name_is_skipped():
    functions = analyze_executable(build_elf([
        ("foo", 0x1000, 16, "func"),
        (0x10000, 0x1000, 0, "notype"),
    ]))
    assert functions.defined[0x1000].names == ["foo"]


def test_function_name_not_utf8():
    with pytest.raises(UnresolvedName) as e:
        analyze_executable(build_elf([("f\xffo".encode("latin-1"), 0x1000, 16, "func")]))
    assert e.value.index == 1


def test_untyped_name_not_utf8_is_skipped():
    functions = analyze_executable(build_elf([
        ("foo", 0x1000, 16, "func"),
        (b"bad\xc3(", 0x1000, 0, "notype"),
        ("foo_alias", 0x1000, 0, "notype"),
    ]))
    assert functions.defined[0x1000].names == ["foo", "foo_alias"]


def test_utf8_names():
    functions = analyze_executable(build_elf([("grüße", 0x1000, 16, "func")]))
    assert functions.defined[0x1000].names == ["grüße"]


def test_symtab_is_not_a_symbol_table():
    with pytest.raises(MalformedInput):
        analyze_executable(build_elf([("foo", 0x1000, 16, "func")],
                                     symtab_type=SHT_PROGBITS))


@pytest.mark.parametrize("elfclass, entsize", [(64, 16), (32, 24), (64, 0)])
def test_unexpected_entry_size(elfclass, entsize):
    with pytest.raises(MalformedInput):
        analyze_executable(build_elf([("foo", 0x1000, 16, "func")],
                                     elfclass=elfclass, symtab_entsize=entsize))
