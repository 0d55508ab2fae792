class Function:
    """A defined subroutine: its symbol names, code size and stack usage."""

    def __init__(self, size, names=None, stack=None):
        self.names = names if names is not None else []
        self.size = size
        # None means no stack-size record was found, which is not the
        # same as a frame of zero bytes.
        self.stack = stack

    def __repr__(self):
        return f"Function(names={self.names!r}, size={self.size}, stack={self.stack})"


class Functions:
    """Functions found after analyzing an executable."""

    def __init__(self, have_32_bit_addresses, undefined, defined):
        self.have_32_bit_addresses = have_32_bit_addresses
        # Names of function symbols without an address (resolved at load time).
        self.undefined = undefined
        # Address -> Function, in ascending address order.
        self.defined = defined
