from .analyze import analyze_executable, iter_stack_sizes, STACK_SIZES_SECTION
from .errors import StackSizesError, MalformedInput, UnresolvedName, BuildError
from .model import Function, Functions
from .report import build_report, format_report, Demangler

__all__ = [
    "analyze_executable", "iter_stack_sizes", "STACK_SIZES_SECTION",
    "StackSizesError", "MalformedInput", "UnresolvedName", "BuildError",
    "Function", "Functions",
    "build_report", "format_report", "Demangler",
]
