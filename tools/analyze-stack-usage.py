#!/usr/bin/env python3
#
#  Usage:
#
#    $ RUSTFLAGS="-Z emit-stack-sizes" cargo build --release
#    $ ./tools/analyze-stack-usage.py target/release/app --min-stack 256
#
#  The linker has to keep .stack_sizes (see LINKER_SCRIPT in
#  stack_sizes/cargo.py), or `cargo stack-sizes' does all of this for you.
#
import argparse
import subprocess
import sys
import colorama
from colorama import Fore, Style
from stack_sizes import StackSizesError, analyze_executable, build_report, \
    format_report, Demangler


def error(message):
    sys.exit(f"{Fore.RED}{Style.BRIGHT}analyze-stack-usage.py: {message}{Style.RESET_ALL}")


def analyze(args):
    functions = analyze_executable(open(args.elf_file, "rb").read())
    if not any(f.stack is not None for f in functions.defined.values()):
        sys.exit("error: no stack sizes found (is .stack_sizes empty?)")

    demangle = Demangler(args.cxxfilt)
    demangle.preload(name for f in functions.defined.values() for name in f.names)
    rows = build_report(functions, args.min_stack, demangle)
    print(format_report(rows))


def main():
    parser = argparse.ArgumentParser(description="The static stack usage analyzer.")
    parser.add_argument("--min-stack", type=int, default=0)
    parser.add_argument("--cxxfilt", default="c++filt", help="The c++filt path.")
    parser.add_argument("elf_file")
    args = parser.parse_args()

    try:
        analyze(args)
    except StackSizesError as e:
        error(str(e))
    except subprocess.CalledProcessError:
        error("A subprocess returned an error, aborting.")
    except OSError as e:
        error(str(e))

if __name__ == "__main__":
    colorama.init(autoreset=True)
    main()
