"""Scratch build directory shared by consecutive builds in one process."""

import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .messages import info


SRC_DIR_NAME = "src"
BINDINGS_DIR_NAME = "py"
TARGET_DIR_NAME = "target"
MANIFEST_FILE_NAME = "Cargo.toml"
COMPILE_UNIT_FILE_NAME = "lib.rs"
BINDINGS_FILE_NAME = "rustinline_bindings.py"
# inline builds are named rustinline1, rustinline2, ... after this project
LIBRARY_NAME_PREFIX = "rustinline"
TEMP_DIR_PREFIX = "rustinline-"


class BuildSession:
    """One build directory with the fixed cargo project layout."""

    def __init__(self, root: Path):
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    @property
    def src_dir(self) -> Path:
        return self._root / SRC_DIR_NAME

    @property
    def bindings_dir(self) -> Path:
        return self._root / BINDINGS_DIR_NAME

    @property
    def target_dir(self) -> Path:
        return self._root / TARGET_DIR_NAME

    @property
    def manifest_path(self) -> Path:
        return self._root / MANIFEST_FILE_NAME

    @property
    def compile_unit_path(self) -> Path:
        return self.src_dir / COMPILE_UNIT_FILE_NAME

    @property
    def bindings_path(self) -> Path:
        return self.bindings_dir / BINDINGS_FILE_NAME

    def exists(self) -> bool:
        return self._root.is_dir()

    @classmethod
    def create(cls, base_dir: Optional[Path] = None) -> "BuildSession":
        if base_dir is not None:
            base_dir.mkdir(parents=True, exist_ok=True)
        root = Path(
            tempfile.mkdtemp(
                prefix=TEMP_DIR_PREFIX,
                dir=str(base_dir) if base_dir is not None else None,
            )
        )
        session = cls(root)
        session.src_dir.mkdir()
        session.bindings_dir.mkdir()
        return session

    def remove(self) -> None:
        if self._root.exists():
            shutil.rmtree(self._root)


class SessionManager:
    """Owns the live build session and the library name counter.

    The counter survives session resets so inline builds never reuse a
    library name within the process.
    """

    def __init__(self, base_dir: Optional[Path] = None, first_index: int = 1):
        self._base_dir = base_dir
        self._session: Optional[BuildSession] = None
        self._count = first_index

    @property
    def session(self) -> Optional[BuildSession]:
        return self._session

    @property
    def count(self) -> int:
        return self._count

    @property
    def base_dir(self) -> Optional[Path]:
        return self._base_dir

    def set_base_dir(self, value: Optional[Path]) -> None:
        self._base_dir = value

    def acquire(self, reuse: bool = True) -> BuildSession:
        if not reuse:
            self.destroy()
        if self._session is None:
            self._session = BuildSession.create(self._base_dir)
        return self._session

    def destroy(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        session.remove()

    def next_library_name(self) -> str:
        name = f"{LIBRARY_NAME_PREFIX}{self._count}"
        self._count += 1
        return name


# Process-wide default session
session_manager = SessionManager()


def clean_build_dir(manager: Optional[SessionManager] = None) -> None:
    """Remove the process-wide build directory, if one exists."""
    manager = manager if manager is not None else globals()["session_manager"]
    session = manager.session
    if session is not None:
        info(f"removing {session.root}")
    manager.destroy()
