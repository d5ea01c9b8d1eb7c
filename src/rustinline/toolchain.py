"""cargo adapter: target selection, command line and subprocess handling."""

import shlex
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from . import platform as host
from .errors import CompilationError, UnsupportedArchitectureError
from .messages import error, info
from .session import BuildSession


DEFAULT_CARGO = "cargo"
PROFILES = ("dev", "release")
WINDOWS_X86_64_TARGET = "x86_64-pc-windows-gnu"
WINDOWS_I686_TARGET = "i686-pc-windows-gnu"
WINDOWS_X86_MACHINES = {"amd64", "x86_64", "x86", "i386", "i686"}


def specific_target_name(
    system: Optional[str] = None,
    machine: Optional[str] = None,
    pointer_bits: Optional[int] = None,
) -> Optional[str]:
    """Return the explicit target triple to build for, if one is needed.

    Only Windows needs one, and the library has to match the interpreter's
    bitness rather than the OS.
    """
    system = system if system is not None else host.system_name()
    if system != "Windows":
        return None
    machine = machine if machine is not None else host.machine_name()
    bits = pointer_bits if pointer_bits is not None else host.pointer_bits()
    if machine.lower() not in WINDOWS_X86_MACHINES:
        raise UnsupportedArchitectureError(system, machine)
    if bits == 64:
        return WINDOWS_X86_64_TARGET
    if bits == 32:
        return WINDOWS_I686_TARGET
    raise UnsupportedArchitectureError(system, f"{machine} ({bits}-bit)")


def validate_profile(profile: str) -> str:
    if profile not in PROFILES:
        raise ValueError(
            f"profile must be one of {', '.join(PROFILES)}; got {profile!r}"
        )
    return profile


def run_cmd(
    cmd: Sequence[str],
    quiet: bool = False,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run a subprocess command and return the exit code."""
    if quiet:
        stream = subprocess.DEVNULL
    else:
        print("+", " ".join(shlex.quote(part) for part in cmd))
        stream = None
    completed = subprocess.run(
        cmd,
        cwd=str(cwd) if cwd else None,
        env=env,
        stdout=stream,
        stderr=stream,
        check=False,
    )
    return completed.returncode


class CargoToolchain:
    """Blocking `cargo build --lib` invocation for one build session."""

    def __init__(self, command: str = DEFAULT_CARGO):
        self._command = command

    @property
    def command(self) -> str:
        return self._command

    def build_command(
        self,
        manifest_path: Path,
        target_dir: Path,
        profile: str = "dev",
        target: Optional[str] = None,
    ) -> list[str]:
        command = [self._command, "build", "--lib"]
        if target is not None:
            command.extend(["--target", target])
        command.extend(["--manifest-path", str(manifest_path)])
        command.extend(["--target-dir", str(target_dir)])
        if profile == "release":
            command.append("--release")
        return command

    def build(
        self,
        session: BuildSession,
        profile: str = "dev",
        target: Optional[str] = None,
        quiet: bool = False,
    ) -> int:
        validate_profile(profile)
        command = self.build_command(
            session.manifest_path, session.target_dir, profile, target
        )
        if not quiet:
            info(f"build directory: {session.root}")
        try:
            returncode = run_cmd(command, quiet=quiet)
        except FileNotFoundError as exc:
            raise CompilationError(
                f"cargo executable not found: {self._command}"
            ) from exc
        if returncode != 0:
            if not quiet:
                error(f"command failed with exit code {returncode}")
            raise CompilationError(
                "Rust code could not be compiled successfully. Aborting.",
                returncode=returncode,
            )
        return returncode
