import json
import logging
import subprocess
import tempfile
from pathlib import Path
from .config import find_project_root, host_triple, read_cargo_config, target_dir
from .errors import BuildError

logger = logging.getLogger(__name__)

LINKER_SCRIPT_NAME = "stack-sizes-link.x"
LINKER_SCRIPT = """\
SECTIONS
{
  /* `INFO` makes the section not allocatable so it won't be loaded into memory */
  .stack_sizes (INFO) :
  {
    KEEP(*(.stack_sizes));
  }
}
"""


def toml_string(s):
    # JSON string escapes are valid TOML basic string escapes.
    return json.dumps(s)


def rustflags_override(target, rustflags, script_dir, script_name=LINKER_SCRIPT_NAME):
    script_dir = str(script_dir).replace("\\", "/")
    flags = list(rustflags) + [
        "-Z", "emit-stack-sizes",
        "-C", f"link-arg=-T{script_name}",
        "-C", f"link-arg=-L{script_dir}",
    ]
    return f"target.{target}.rustflags=[{', '.join(map(toml_string, flags))}]"


def cargo_build_args(override, bin=None, example=None, features=None, all_features=False):
    if (bin is None) == (example is None):
        raise BuildError("Please specify either --example <NAME> or --bin <NAME>.")

    args = ["--config", override, "build", "--release"]
    if all_features:
        args.append("--all-features")
    elif features:
        args.append(f"--features={features}")

    if example is not None:
        args.append(f"--example={example}")
    else:
        args.append(f"--bin={bin}")
    return args


def artifact_path(target_dir, target, host, name, example=False):
    path = Path(target_dir)
    if target != host:
        path = path / target
    path = path / "release"
    if example:
        path = path / "examples"
    return path / name


def repair_artifact_path(path):
    """Guesses the artifact location one level up for workspace members.

    ``<ws>/<member>/target/...`` becomes ``<ws>/target/...`` when the former
    does not exist.
    """
    path = Path(path)
    if path.exists():
        return path

    parts = list(path.parts)
    if "target" not in parts:
        return path
    target_index = parts.index("target")
    if target_index == 0:
        return path

    del parts[target_index - 1]
    repaired = Path(*parts)
    logger.info(f"{path} does not exist, trying {repaired}")
    return repaired


def build(tools, bin=None, example=None, features=None, all_features=False,
          cwd=".", out_override=None):
    """Builds the binary with stack size instrumentation and returns its path."""
    project_root = find_project_root(cwd)
    config = read_cargo_config(project_root)
    host = host_triple(tools.rustc)
    target = config.target or host

    with tempfile.TemporaryDirectory() as tempdir:
        (Path(tempdir) / LINKER_SCRIPT_NAME).write_text(LINKER_SCRIPT)
        override = rustflags_override(target, config.rustflags, tempdir)
        argv = [tools.cargo] + cargo_build_args(override, bin, example, features,
                                                all_features)
        logger.info(" ".join(argv))
        subprocess.check_call(argv, cwd=project_root)

    if out_override is not None:
        return Path(out_override)

    name = example if example is not None else bin
    path = artifact_path(target_dir(project_root), target, host, name,
                         example is not None)
    path = repair_artifact_path(path)
    if not path.exists():
        raise BuildError(f"{path} not found (hint: use --out-override)")
    return path
