"""Defaults for rust_source(), loaded from rustinline.json and the environment."""

import json
import os
from pathlib import Path
from typing import Any, Optional, Sequence, TypeAlias, TypedDict

from .errors import ConfigError
from .manifest import DEFAULT_API_VERSION
from .messages import error
from .toolchain import DEFAULT_CARGO, PROFILES


DEFAULT_CONFIG_FILE_NAME = "rustinline.json"
DEFAULT_PROFILE = "dev"
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class RustSourceConfig(TypedDict):
    cargo: str
    build_root: Optional[Path]
    profile: str
    api_version: str
    macros_version: Optional[str]
    dependencies: list[str]
    patch_crates_io: list[str]
    cache_build: bool
    quiet: bool


class ResolvedSettings(TypedDict):
    cargo: str
    build_root: Optional[Path]
    profile: str
    api_version: str
    macros_version: str
    dependencies: list[str]
    patch_crates_io: list[str]
    cache_build: bool
    quiet: bool


StringValidationResult: TypeAlias = tuple[int, Optional[str]]
ListValidationResult: TypeAlias = tuple[int, Optional[list[str]]]
BoolValidationResult: TypeAlias = tuple[int, Optional[bool]]


class RustSourceConfigManager:
    def __init__(
        self,
        cargo: str = DEFAULT_CARGO,
        build_root: Optional[Path] = None,
        profile: str = DEFAULT_PROFILE,
        api_version: str = DEFAULT_API_VERSION,
        macros_version: Optional[str] = None,
        dependencies: Optional[list[str]] = None,
        patch_crates_io: Optional[list[str]] = None,
        cache_build: bool = True,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self._cargo = cargo
        self._build_root = build_root
        self._profile = profile
        self._api_version = api_version
        self._macros_version = macros_version
        self._dependencies = dependencies if dependencies is not None else []
        # no default git patch; it would force a network fetch per fresh build dir
        self._patch_crates_io = patch_crates_io if patch_crates_io is not None else []
        self._cache_build = cache_build
        self._quiet = quiet
        self._config_path = config_path

    @property
    def cargo(self) -> str:
        return self._cargo

    @property
    def build_root(self) -> Optional[Path]:
        return self._build_root

    @property
    def profile(self) -> str:
        return self._profile

    @property
    def api_version(self) -> str:
        return self._api_version

    @property
    def macros_version(self) -> Optional[str]:
        return self._macros_version

    @property
    def dependencies(self) -> list[str]:
        return self._dependencies

    @property
    def patch_crates_io(self) -> list[str]:
        return self._patch_crates_io

    @property
    def cache_build(self) -> bool:
        return self._cache_build

    @property
    def quiet(self) -> bool:
        return self._quiet

    @property
    def config_path(self) -> Optional[Path]:
        return self._config_path

    def set_cargo(self, value: str) -> None:
        self._cargo = value

    def set_build_root(self, value: Optional[Path]) -> None:
        self._build_root = value

    def set_profile(self, value: str) -> None:
        self._profile = value

    def set_api_version(self, value: str) -> None:
        self._api_version = value

    def set_macros_version(self, value: Optional[str]) -> None:
        self._macros_version = value

    def set_dependencies(self, value: list[str]) -> None:
        self._dependencies = value

    def set_patch_crates_io(self, value: list[str]) -> None:
        self._patch_crates_io = value

    def set_cache_build(self, value: bool) -> None:
        self._cache_build = value

    def set_quiet(self, value: bool) -> None:
        self._quiet = value

    def set_config_path(self, value: Optional[Path]) -> None:
        self._config_path = value

    def to_dict(self) -> RustSourceConfig:
        return {
            "cargo": self._cargo,
            "build_root": self._build_root,
            "profile": self._profile,
            "api_version": self._api_version,
            "macros_version": self._macros_version,
            "dependencies": list(self._dependencies),
            "patch_crates_io": list(self._patch_crates_io),
            "cache_build": self._cache_build,
            "quiet": self._quiet,
        }

    @classmethod
    def from_dict(cls, config: RustSourceConfig) -> "RustSourceConfigManager":
        return cls(
            cargo=config["cargo"],
            build_root=config["build_root"],
            profile=config["profile"],
            api_version=config["api_version"],
            macros_version=config["macros_version"],
            dependencies=list(config["dependencies"]),
            patch_crates_io=list(config["patch_crates_io"]),
            cache_build=config["cache_build"],
            quiet=config["quiet"],
        )


# Process-wide configuration
config_manager = RustSourceConfigManager()


def _validate_non_empty_string(value: Any, field_name: str) -> StringValidationResult:
    """Validate value is a non-empty string.

    Returns (0, stripped_string) if valid, (0, None) if value is None,
    or (1, None) if invalid with error message printed.
    """
    if value is None:
        return 0, None
    if not isinstance(value, str) or not value.strip():
        error(f"{field_name} must be a non-empty string")
        return 1, None
    return 0, value.strip()


def _validate_string_list(value: Any, field_name: str) -> ListValidationResult:
    if value is None:
        return 0, None
    if not isinstance(value, list) or not all(
        isinstance(entry, str) for entry in value
    ):
        error(f"{field_name} must be a list of strings")
        return 1, None
    return 0, list(value)


def _validate_bool(value: Any, field_name: str) -> BoolValidationResult:
    if value is None:
        return 0, None
    if not isinstance(value, bool):
        error(f"{field_name} must be true or false")
        return 1, None
    return 0, value


def _parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (got {value!r})")


def apply_config_file(
    path: Path, config_manager: Optional[RustSourceConfigManager] = None
) -> int:
    """Load and validate a JSON config file into config_manager."""
    manager = (
        config_manager if config_manager is not None else globals()["config_manager"]
    )
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        error(f"failed to read config file {path}: {exc}")
        return 1
    try:
        data = json.loads(contents)
    except json.JSONDecodeError as exc:
        error(f"invalid JSON in {path}: {exc}")
        return 1
    if not isinstance(data, dict):
        error(f"config file {path} must contain a JSON object")
        return 1

    unknown = sorted(set(data) - set(RustSourceConfig.__annotations__))
    if unknown:
        error(f"unknown keys in {path}: {', '.join(unknown)}")
        return 1

    for field in ("cargo", "api_version", "macros_version", "profile", "build_root"):
        result, value = _validate_non_empty_string(data.get(field), field)
        if result:
            return 1
        if value is None:
            continue
        if field == "profile" and value not in PROFILES:
            error(f"profile must be one of {', '.join(PROFILES)}")
            return 1
        if field == "build_root":
            root = Path(value).expanduser()
            if not root.is_absolute():
                root = path.parent / root
            manager.set_build_root(root)
        else:
            getattr(manager, f"set_{field}")(value)

    for field in ("dependencies", "patch_crates_io"):
        result, entries = _validate_string_list(data.get(field), field)
        if result:
            return 1
        if entries is not None:
            getattr(manager, f"set_{field}")(entries)

    for field in ("cache_build", "quiet"):
        result, flag = _validate_bool(data.get(field), field)
        if result:
            return 1
        if flag is not None:
            getattr(manager, f"set_{field}")(flag)

    manager.set_config_path(path)
    return 0


def discover_config_path(start_dir: Path, names: Sequence[str]) -> Optional[Path]:
    current = Path(start_dir).resolve()
    while True:
        for name in names:
            candidate = current / name
            if candidate.exists():
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def resolve_settings(
    config_manager: Optional[RustSourceConfigManager] = None,
) -> ResolvedSettings:
    """Merge the configured defaults with RUSTINLINE_* environment overrides."""
    manager = (
        config_manager if config_manager is not None else globals()["config_manager"]
    )
    settings = manager.to_dict()

    cargo_override = os.environ.get("RUSTINLINE_CARGO")
    if cargo_override:
        settings["cargo"] = cargo_override
    build_root_override = os.environ.get("RUSTINLINE_BUILD_ROOT")
    if build_root_override:
        settings["build_root"] = Path(build_root_override).expanduser()
    profile_override = os.environ.get("RUSTINLINE_PROFILE")
    if profile_override:
        if profile_override not in PROFILES:
            raise ConfigError(
                f"RUSTINLINE_PROFILE must be one of {', '.join(PROFILES)}"
            )
        settings["profile"] = profile_override
    api_override = os.environ.get("RUSTINLINE_API_VERSION")
    if api_override:
        settings["api_version"] = api_override
    macros_override = os.environ.get("RUSTINLINE_MACROS_VERSION")
    if macros_override:
        settings["macros_version"] = macros_override
    cache_override = os.environ.get("RUSTINLINE_CACHE_BUILD")
    if cache_override:
        settings["cache_build"] = _parse_bool(cache_override, "RUSTINLINE_CACHE_BUILD")
    quiet_override = os.environ.get("RUSTINLINE_QUIET")
    if quiet_override:
        settings["quiet"] = _parse_bool(quiet_override, "RUSTINLINE_QUIET")

    return {
        "cargo": settings["cargo"],
        "build_root": settings["build_root"],
        "profile": settings["profile"],
        "api_version": settings["api_version"],
        "macros_version": settings["macros_version"] or settings["api_version"],
        "dependencies": settings["dependencies"],
        "patch_crates_io": settings["patch_crates_io"],
        "cache_build": settings["cache_build"],
        "quiet": settings["quiet"],
    }
