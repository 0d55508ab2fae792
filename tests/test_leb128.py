import pytest
from stack_sizes.errors import MalformedInput
from stack_sizes.leb128 import decode_uleb128


def test_single_byte():
    assert decode_uleb128(b"\x18") == (24, 1)


def test_multi_byte():
    # Example from the DWARF specification.
    assert decode_uleb128(b"\xe5\x8e\x26") == (624485, 3)


def test_offset():
    assert decode_uleb128(b"\xff\xff\x80\x01\x00", 2) == (128, 4)


def test_zero():
    assert decode_uleb128(b"\x00") == (0, 1)


def test_truncated():
    with pytest.raises(MalformedInput) as e:
        decode_uleb128(b"\x00\x80\x80", 1, ".stack_sizes")
    assert e.value.offset == 1
    assert e.value.section == ".stack_sizes"


def test_empty():
    with pytest.raises(MalformedInput):
        decode_uleb128(b"")
