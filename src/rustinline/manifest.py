"""Cargo.toml rendering for the generated library crate."""

from pathlib import Path
from typing import Iterable, Optional

from .session import BuildSession


PACKAGE_VERSION = "0.0.1"
PACKAGE_EDITION = "2018"
CRATE_TYPE = "cdylib"
API_CRATE = "libc"
MACROS_CRATE = "paste"
DEFAULT_API_VERSION = "*"
PATCH_SECTION = "patch.crates-io"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def generate_manifest(
    library_name: str,
    dependencies: Optional[Iterable[str]] = None,
    patch_crates_io: Optional[Iterable[str]] = None,
    api_version: str = DEFAULT_API_VERSION,
    macros_version: Optional[str] = None,
) -> str:
    """Render the manifest text.

    Dependency and patch lines are copied verbatim; cargo reports any
    malformed line when the crate is built.
    """
    if macros_version is None:
        macros_version = api_version
    lines = [
        "[package]",
        f"name = {_quote(library_name)}",
        f"version = {_quote(PACKAGE_VERSION)}",
        f"edition = {_quote(PACKAGE_EDITION)}",
        "",
        "[lib]",
        f"crate-type = [{_quote(CRATE_TYPE)}]",
        "",
        "[dependencies]",
        f"{API_CRATE} = {_quote(api_version)}",
        f"{MACROS_CRATE} = {_quote(macros_version)}",
    ]
    lines.extend(dependencies or [])
    lines.append("")
    lines.append(f"[{PATCH_SECTION}]")
    lines.extend(patch_crates_io or [])
    return "\n".join(lines) + "\n"


def write_manifest(session: BuildSession, contents: str) -> Path:
    path = session.manifest_path
    path.write_text(contents, encoding="utf-8")
    return path
