"""Loading of ``build-config.json``."""
from __future__ import annotations

import dataclasses
import fnmatch
import json
from pathlib import Path, PureWindowsPath
from typing import Any, Sequence

from build_errors import ConfigError

DEFAULT_CONFIG_NAME = "build-config.json"
DEFAULT_TUNING_PATTERNS = ("**/*.xml", "!**/*.SimData.xml")
DEFAULT_SIMDATA_PATTERNS = ("**/*.SimData.xml",)
DEFAULT_PACKAGE_PATTERNS = ("**/*.package",)
CACHE_FILE_NAME = "cache.json"


@dataclasses.dataclass(slots=True)
class BuildConfig:
    root: Path
    build_name: str
    build_folders: list[Path]
    source_folder: Path
    tuning_patterns: list[str] = dataclasses.field(default_factory=lambda: list(DEFAULT_TUNING_PATTERNS))
    simdata_patterns: list[str] = dataclasses.field(default_factory=lambda: list(DEFAULT_SIMDATA_PATTERNS))
    package_patterns: list[str] = dataclasses.field(default_factory=lambda: list(DEFAULT_PACKAGE_PATTERNS))
    cache_folder: Path | None = None
    use_cache: bool = True
    fail_fast: bool = False
    compress: bool = True

    @property
    def package_name(self) -> str:
        return f"{self.build_name}.package"

    @property
    def cache_path(self) -> Path | None:
        if self.cache_folder is None:
            return None
        return self.cache_folder / CACHE_FILE_NAME

    def validate(self) -> None:
        if not self.build_name:
            raise ConfigError("'buildName' must not be empty")
        if not self.build_folders:
            raise ConfigError(
                "Your package cannot be written without at least one folder listed in 'buildFolders'."
            )


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def _expect(raw: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any = None) -> Any:
    if key not in raw:
        return default
    value = raw[key]
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' has the wrong type: {type(value).__name__}")
    return value


def _string_list(raw: dict[str, Any], key: str, default: Sequence[str]) -> list[str]:
    values = _expect(raw, key, list, list(default))
    if not all(isinstance(item, str) for item in values):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(values)


def check_pattern(pattern: str) -> str:
    """Reject patterns that would reach outside the source folder."""
    body = pattern[1:] if pattern.startswith("!") else pattern
    normalized = body.replace("\\", "/")
    if not normalized or normalized.startswith("/") or PureWindowsPath(body).drive:
        raise ConfigError(f"Source pattern must be relative to 'sourceFolder': {pattern!r}")
    if ".." in normalized.split("/"):
        raise ConfigError(f"Source pattern must not contain '..': {pattern!r}")
    return pattern


def _pattern_list(raw: dict[str, Any], key: str, default: Sequence[str]) -> list[str]:
    return [check_pattern(pattern) for pattern in _string_list(raw, key, default)]


def config_from_dict(raw: dict[str, Any], root: Path) -> BuildConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Build config must be a JSON object")
    if "buildName" not in raw:
        raise ConfigError("Build config is missing 'buildName'")
    patterns = _expect(raw, "sourcePatterns", dict, {})
    cache_folder = _expect(raw, "cacheFolder", str, "cache")
    config = BuildConfig(
        root=root,
        build_name=_expect(raw, "buildName", str),
        build_folders=[_resolve(root, folder) for folder in _string_list(raw, "buildFolders", [])],
        source_folder=_resolve(root, _expect(raw, "sourceFolder", str, "src")),
        tuning_patterns=_pattern_list(patterns, "tuning", DEFAULT_TUNING_PATTERNS),
        simdata_patterns=_pattern_list(patterns, "simdata", DEFAULT_SIMDATA_PATTERNS),
        package_patterns=_pattern_list(patterns, "packages", DEFAULT_PACKAGE_PATTERNS),
        cache_folder=_resolve(root, cache_folder) if cache_folder else None,
        use_cache=_expect(raw, "useCache", bool, True),
        fail_fast=_expect(raw, "failFast", bool, False),
        compress=_expect(raw, "compress", bool, True),
    )
    config.validate()
    return config


def load_config(path: Path) -> BuildConfig:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read build config {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Build config {path} is not valid JSON: {exc}") from exc
    return config_from_dict(raw, path.resolve().parent)


def _matches(rel_path: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    # "**/" also matches files at the top of the source folder.
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
    return False


def glob_sources(folder: Path, patterns: Sequence[str]) -> list[Path]:
    """Expand glob patterns under ``folder``; ``!pattern`` removes matches.

    Results keep pattern order, each file listed once, sorted within a
    pattern so builds are reproducible.
    """
    for pattern in patterns:
        check_pattern(pattern)
    includes = [p for p in patterns if not p.startswith("!")]
    excludes = [p[1:] for p in patterns if p.startswith("!")]
    found: dict[Path, None] = {}
    for pattern in includes:
        for path in sorted(folder.glob(pattern)):
            if not path.is_file():
                continue
            rel = path.relative_to(folder).as_posix()
            if any(_matches(rel, exclude) for exclude in excludes):
                continue
            found.setdefault(path, None)
    return list(found)
