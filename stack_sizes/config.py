import os
import subprocess
import tomllib
from pathlib import Path
from .errors import BuildError


class CargoConfig:
    def __init__(self, rustflags=None, target=None):
        self.rustflags = rustflags if rustflags is not None else []
        self.target = target


class Tools:
    """External programs, from the environment unless given explicitly."""

    def __init__(self, cargo=None, rustc=None, cxxfilt=None):
        self.cargo = cargo or os.environ.get("CARGO", "cargo")
        self.rustc = rustc or os.environ.get("RUSTC", "rustc")
        self.cxxfilt = cxxfilt or os.environ.get("CXXFILT", "c++filt")


def find_project_root(start):
    start = Path(start).resolve()
    for d in [start] + list(start.parents):
        if (d / "Cargo.toml").exists():
            return d
    raise BuildError(f"could not find Cargo.toml in {start} or any parent directory")


def target_dir(project_root):
    return Path(os.environ.get("CARGO_TARGET_DIR", project_root / "target"))


def read_cargo_config(project_root):
    path = Path(project_root) / ".cargo" / "config.toml"
    if not path.exists():
        return CargoConfig()

    try:
        with open(path, "rb") as f:
            value = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise BuildError(f"{path}: {e}")

    build = value.get("build", {})
    if not isinstance(build, dict):
        return CargoConfig()

    rustflags = build.get("rustflags", [])
    if isinstance(rustflags, str):
        rustflags = rustflags.split()
    elif not isinstance(rustflags, list):
        raise BuildError(f"{path}: build.rustflags must be a string or an array")

    return CargoConfig([str(flag) for flag in rustflags], build.get("target"))


def host_triple(rustc="rustc"):
    stdout = subprocess.check_output([rustc, "-vV"], text=True)
    for line in stdout.splitlines():
        if line.startswith("host:"):
            return line.split(":", 1)[1].strip()
    raise BuildError(f"`{rustc} -vV' did not report a host triple")
