class StackSizesError(Exception):
    def __init__(self, message, section=None, offset=None):
        super().__init__(message)
        self.message = message
        self.section = section
        self.offset = offset

    def __str__(self):
        where = []
        if self.section is not None:
            where.append(self.section)
        if self.offset is not None:
            where.append(f"offset {self.offset:#x}")
        if where:
            return f"{' at '.join(where)}: {self.message}"
        return self.message


class MalformedInput(StackSizesError):
    pass


class UnresolvedName(StackSizesError):
    def __init__(self, message, index, section=".symtab", offset=None):
        super().__init__(message, section, offset)
        self.index = index


class BuildError(StackSizesError):
    pass
