import argparse
import logging
import subprocess
import sys
from pathlib import Path
import colorama
from colorama import Fore, Style
from .analyze import analyze_executable
from .cargo import build
from .config import Tools
from .errors import StackSizesError
from .report import Demangler, build_report, format_report

PROG = "cargo-stack-sizes"
TOO_MUCH_STACK_THRESHOLD = 2048

LEVEL_COLORS = {
    logging.DEBUG: Style.DIM,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColorFormatter(logging.Formatter):
    def format(self, record):
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{record.levelname.lower()}:{Style.RESET_ALL} {message}"


def setup_logging(verbose):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter("%(message)s"))
    root = logging.getLogger("stack_sizes")
    root.handlers = [handler]
    root.setLevel(level)


def error(message):
    sys.exit(f"{Fore.RED}{Style.BRIGHT}{PROG}: error: {message}{Style.RESET_ALL}")


def parse_args(argv):
    # `cargo stack-sizes ...' runs `cargo-stack-sizes stack-sizes ...'.
    if argv and argv[0] == "stack-sizes":
        argv = argv[1:]

    parser = argparse.ArgumentParser(prog=PROG,
        description="Reports the stack usage of every function in a Rust executable.")
    parser.add_argument("--bin", metavar="BIN", help="Build only the specified binary.")
    parser.add_argument("--example", metavar="NAME",
        help="Build only the specified example.")
    parser.add_argument("--features", metavar="FEATURES",
        help="Space-separated list of features to activate.")
    parser.add_argument("--all-features", action="store_true",
        help="Activate all available features.")
    parser.add_argument("--min-stack", type=int, default=0,
        help="Only show functions whose stack size is greater or equals to this.")
    parser.add_argument("--out-override", type=Path, metavar="PATH",
        help="Override the path of the resulting ELF (use it if it's not found).")
    parser.add_argument("--elf", type=Path, metavar="PATH",
        help="Analyze an already built executable instead of running cargo.")
    parser.add_argument("--warn-stack", type=int, default=TOO_MUCH_STACK_THRESHOLD,
        help="Highlight functions using at least this many bytes of stack.")
    parser.add_argument("--no-demangle", action="store_true",
        help="Print symbol names as they are in the symbol table.")
    parser.add_argument("--cxxfilt", help="The c++filt path (default: $CXXFILT or c++filt).")
    parser.add_argument("--cargo", help="The cargo path (default: $CARGO or cargo).")
    parser.add_argument("--rustc", help="The rustc path (default: $RUSTC or rustc).")
    parser.add_argument("-v", "--verbose", action="count", default=0,
        help="Print more diagnostics (repeat for debug output).")
    return parser.parse_args(argv)


def run(args, tools):
    if args.elf is not None:
        path = args.elf
    else:
        path = build(tools, bin=args.bin, example=args.example,
                     features=args.features, all_features=args.all_features,
                     out_override=args.out_override)

    functions = analyze_executable(path.read_bytes())

    demangle = None
    if not args.no_demangle:
        demangle = Demangler(tools.cxxfilt)
        demangle.preload(name for f in functions.defined.values() for name in f.names)

    rows = build_report(functions, args.min_stack, demangle)
    print(format_report(rows, args.warn_stack, color=sys.stdout.isatty()))


def main(argv=None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.verbose)
    tools = Tools(args.cargo, args.rustc, args.cxxfilt)

    try:
        run(args, tools)
    except StackSizesError as e:
        error(str(e))
    except subprocess.CalledProcessError:
        error("A subprocess returned an error, aborting.")
    except OSError as e:
        error(str(e))


def console_main():
    colorama.init()
    main()


if __name__ == "__main__":
    console_main()
