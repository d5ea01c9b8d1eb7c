"""Builds the compile unit (src/lib.rs) for one invocation."""

import re
import shutil
from pathlib import Path
from typing import Optional, Tuple

from .session import BuildSession, SessionManager


PRELUDE = "use libc::*;\n\n"
EXPORT_MARKER = "#[export]"
NEUTRALIZED_MARKER = "/* #[export] */"

_MARKER_RE = re.compile(r"^([ \t]*)#\[export\]", re.MULTILINE)


def read_compile_unit(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_compile_unit(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def assemble_source(
    manager: SessionManager,
    session: BuildSession,
    file: Optional[Path] = None,
    code: Optional[str] = None,
    use_prelude: bool = True,
) -> Tuple[Path, str]:
    """Write the compile unit and pick the library name.

    Inline code takes a fresh counter-based name. A file keeps its own stem,
    so two files with the same name share one artifact name.
    """
    if file is None and code is None:
        raise ValueError("either file or code must be provided")
    if file is not None and code is not None:
        raise ValueError("provide either file or code, not both")

    path = session.compile_unit_path
    if code is not None:
        if use_prelude:
            code = PRELUDE + code
        if not code.endswith("\n"):
            code += "\n"
        write_compile_unit(path, code)
        library_name = manager.next_library_name()
    else:
        source = Path(file)
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, path)
        library_name = source.stem
    return path, library_name


def neutralize_markers(text: str) -> str:
    """Turn export markers into comments, keeping the line layout intact."""
    return _MARKER_RE.sub(lambda match: match.group(1) + NEUTRALIZED_MARKER, text)
