#!/usr/bin/env python3
"""Command line front end for inspecting and building Rust sources."""

import importlib.metadata
import os
import sys
from pathlib import Path
from typing import Optional

from . import config as rconfig
from .bindings import generate_python_bindings
from .errors import RustInlineError
from .manifest import generate_manifest
from .messages import error, info
from .signatures import format_signature, read_exported_functions
from .source import rust_source


DEFAULT_MANIFEST_NAME = "rustinline"


def usage() -> None:
    print("usage: rustinline <command> [args...]")
    print("")
    print("commands:")
    print("  signatures (s) <file>  list exported functions found in a Rust file")
    print("  bindings (g) <file>    print the Python bindings for a Rust file")
    print("  manifest (m)           print the generated Cargo.toml")
    print("  build (b) <file>       compile a Rust file and load it")
    print("  help (h)               show this help text")
    print("")
    print("options:")
    print("  --config <path>        load defaults from a JSON file")
    print("  --dep <line>           add a Cargo dependency line (repeatable)")
    print("  --name <name>          crate name for manifest")
    print("  --release              build with the release profile")
    print("  --quiet                hide cargo output")
    print("")
    print("examples:")
    print("  rustinline signatures src/lib.rs")
    print("  rustinline bindings src/lib.rs")
    print("  rustinline manifest --dep 'rand = \"0.8\"'")
    print("  rustinline build md.rs --dep 'pulldown-cmark = \"0.8\"' --release")
    print(f"  rustinline build md.rs --config {rconfig.DEFAULT_CONFIG_FILE_NAME}")


def _load_config(config_path: Optional[str]) -> int:
    config_env = os.environ.get("RUSTINLINE_CONFIG_FILE")
    if config_path:
        candidate: Optional[Path] = Path(config_path).expanduser()
    elif config_env:
        candidate = Path(config_env).expanduser()
    else:
        candidate = rconfig.discover_config_path(
            Path.cwd(), [rconfig.DEFAULT_CONFIG_FILE_NAME]
        )
        if candidate is None:
            return 0
    if not candidate.exists():
        error(f"config file {candidate} not found")
        return 2
    return rconfig.apply_config_file(candidate)


def _require_file(args: list[str], command: str) -> Optional[Path]:
    if len(args) != 1:
        error(f"usage: rustinline {command} <file>")
        return None
    path = Path(args[0]).expanduser()
    if not path.is_file():
        error(f"no such file: {path}")
        return None
    return path


def show_signatures(path: Path) -> int:
    signatures = read_exported_functions(path)
    if not signatures:
        info(f"no exported functions in {path}")
        return 0
    for signature in signatures:
        print(format_signature(signature))
    return 0


def show_bindings(path: Path) -> int:
    print(generate_python_bindings(read_exported_functions(path)), end="")
    return 0


def show_manifest(name: str, dependencies: list[str]) -> int:
    settings = rconfig.resolve_settings()
    print(
        generate_manifest(
            name,
            settings["dependencies"] + dependencies,
            settings["patch_crates_io"],
            settings["api_version"],
            settings["macros_version"],
        ),
        end="",
    )
    return 0


def build(
    path: Path, dependencies: list[str], release: bool, quiet: Optional[bool]
) -> int:
    settings = rconfig.resolve_settings()
    scope: dict[str, object] = {}
    rust_source(
        file=path,
        dependencies=settings["dependencies"] + dependencies,
        profile="release" if release else None,
        env=scope,
        quiet=quiet,
    )
    if not scope:
        info(f"built {path.name}; no exported functions")
        return 0
    info(f"built {path.name}; callable functions:")
    for name, function in scope.items():
        print(f"  {function.__doc__ or name}")
    return 0


def main() -> int:
    if len(sys.argv) < 2:
        usage()
        return 2

    command = sys.argv[1]
    if command in {"-v", "--version"}:
        try:
            version = importlib.metadata.version("rustinline")
        except importlib.metadata.PackageNotFoundError:
            version = "0.1.0"
        print(f"rustinline {version}")
        return 0
    args = sys.argv[2:]

    aliases = {
        "s": "signatures",
        "g": "bindings",
        "m": "manifest",
        "b": "build",
        "h": "help",
    }
    command = aliases.get(command, command)
    if command in {"help", "-h", "--help"}:
        usage()
        return 0

    config_path = None
    name = DEFAULT_MANIFEST_NAME
    dependencies: list[str] = []
    release = False
    quiet: Optional[bool] = None
    parsed_args = []
    index = 0
    while index < len(args):
        arg = args[index]
        if arg in {"--config", "--dep", "--name"}:
            if index + 1 >= len(args):
                error(f"usage: {arg} <value>")
                return 2
            value = args[index + 1]
            if arg == "--config":
                config_path = value
            elif arg == "--dep":
                dependencies.append(value)
            else:
                name = value
            index += 2
            continue
        if arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
            if not config_path:
                error("usage: --config <path>")
                return 2
            index += 1
            continue
        if arg == "--release":
            release = True
        elif arg == "--quiet":
            quiet = True
        else:
            parsed_args.append(arg)
        index += 1
    args = parsed_args

    result = _load_config(config_path)
    if result != 0:
        return result

    try:
        if command == "signatures":
            path = _require_file(args, command)
            return show_signatures(path) if path else 2
        if command == "bindings":
            path = _require_file(args, command)
            return show_bindings(path) if path else 2
        if command == "manifest":
            if args:
                error("usage: rustinline manifest [--name <name>] [--dep <line>]")
                return 2
            return show_manifest(name, dependencies)
        if command == "build":
            path = _require_file(args, command)
            return build(path, dependencies, release, quiet) if path else 2
    except RustInlineError as exc:
        error(str(exc))
        return 1

    error(f"unknown command '{command}'")
    usage()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
