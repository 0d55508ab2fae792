import logging
import subprocess
from colorama import Fore, Style

logger = logging.getLogger(__name__)

HEADER = "Code  Stack Name"


def build_report(functions, min_stack=0, demangle=None):
    """Returns ``(names, code_size, stack)`` rows, largest stack first.

    Functions without a stack size record are reported with 0. The order of
    functions with equal stack sizes is unspecified.
    """
    if demangle is None:
        demangle = lambda name: name

    rows = []
    for func in functions.defined.values():
        names = " ".join(demangle(name) for name in func.names if len(name) > 0)
        stack = func.stack if func.stack is not None else 0
        rows.append((names, func.size, stack))

    rows.sort(key=lambda row: row[2], reverse=True)
    return [row for row in rows if row[2] >= min_stack]


def format_report(rows, warn_stack=None, color=False):
    lines = []
    if color:
        lines.append(f"{Style.BRIGHT}{HEADER}{Style.RESET_ALL}")
    else:
        lines.append(HEADER)

    for name, code_size, stack_size in rows:
        line = f"{code_size:5} {stack_size:5} {name}"
        if color and warn_stack is not None and stack_size >= warn_stack:
            line = f"{Fore.YELLOW}{Style.BRIGHT}{line}{Style.RESET_ALL}"
        lines.append(line)
    return "\n".join(lines)


class Demangler:
    """Demangles symbol names with c++filt (C++ and legacy Rust mangling)."""

    def __init__(self, cxxfilt="c++filt"):
        self.cxxfilt = cxxfilt
        self.cache = {}
        self.available = True

    def preload(self, names):
        names = [name for name in set(names) if name and name not in self.cache]
        if not names or not self.available:
            return
        demangled = self._run(names)
        if not self.available:
            return
        if len(demangled) != len(names):
            logger.warning(f"{self.cxxfilt}: expected {len(names)} lines, "
                           f"got {len(demangled)}; leaving names mangled")
            return
        self.cache.update(zip(names, demangled))

    def __call__(self, name):
        if name not in self.cache:
            demangled = self._run([name]) if self.available else []
            self.cache[name] = demangled[0] if len(demangled) == 1 else name
        return self.cache[name]

    def _run(self, names):
        try:
            stdout = subprocess.run([self.cxxfilt], input="\n".join(names) + "\n",
                                    capture_output=True, text=True, check=True).stdout
        except FileNotFoundError:
            logger.warning(f"{self.cxxfilt} not found; symbol names are not demangled")
            self.available = False
            return []
        return stdout.splitlines()
