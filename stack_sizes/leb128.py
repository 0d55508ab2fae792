from .errors import MalformedInput


def decode_uleb128(buf, offset=0, section=None):
    """Decodes an unsigned LEB128 number starting at ``buf[offset]``.

    Returns the value and the offset of the first byte after it.
    """
    value = 0
    shift = 0
    i = offset
    while True:
        if i >= len(buf):
            raise MalformedInput("truncated LEB128 value", section, offset)
        b = buf[i]
        value |= (b & 0x7f) << shift
        i += 1
        if b & 0x80 == 0:
            return value, i
        shift += 7
