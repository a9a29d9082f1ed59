"""Error kinds raised while building or extracting packages."""
from __future__ import annotations


class BuildError(Exception):
    """Base class for every error the build scripts report by name."""


class ConfigError(BuildError):
    pass


class ClassificationConflictError(BuildError):
    def __init__(self, path: str) -> None:
        super().__init__(
            f"File path '{path}' appears in both tuning and SimData glob lists. "
            "The source patterns in the build config are probably incorrect."
        )
        self.path = path


class ResourceParseError(BuildError):
    pass


class ResolutionError(BuildError):
    """A single source file could not be given a resource key."""


class DuplicateNameError(ResolutionError):
    def __init__(self, name: str, first_path: str | None = None, *, kind: str = "Tuning") -> None:
        detail = f" (already declared by '{first_path}')" if first_path else ""
        super().__init__(f"{kind} name '{name}' is declared more than once{detail}")
        self.name = name


class DuplicateInstanceError(ResolutionError):
    def __init__(self, instance: int, first_path: str | None = None) -> None:
        detail = f" (already used by '{first_path}')" if first_path else ""
        super().__init__(f"Tuning instance {instance} is used more than once{detail}")
        self.instance = instance


class InvalidTypeError(ResolutionError):
    pass


class MissingTuningError(ResolutionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"SimData references tuning '{name}', which was not built")
        self.name = name


class UnmappedGroupError(ResolutionError):
    pass


class CacheLoadError(BuildError):
    pass


class CacheSaveError(BuildError):
    pass
