"""Persisted path -> resource key cache shared between incremental builds.

The cache file looks like::

    {"keys": [{"filepath": "tuning/trait.xml", "tuningName": "my_trait",
               "digest": "<sha256>", "key": {"type": 3412057543, "group": 0,
                                           "instance": "12345"}}]}

Instances are written as decimal strings because JSON readers commonly hold
numbers as doubles, which cannot represent every 64-bit instance.
"""
from __future__ import annotations

import dataclasses
import hashlib
import json
from pathlib import Path
from typing import Any, Collection, Mapping

from build_errors import CacheLoadError, CacheSaveError
from dbpf_format import ResourceKey


def _key_from_json(key: Any) -> ResourceKey:
    """Accept ``{"type", "group", "instance"}`` or the string ``"type_group_instance"``."""
    if isinstance(key, str):
        parts = key.split("_")
        if len(parts) != 3:
            raise ValueError(f"Key string must be type_group_instance: {key!r}")
        type_, group, instance = (int(part, 10) for part in parts)
        return ResourceKey(type_, group, instance)
    return ResourceKey(int(key["type"]), int(key["group"]), int(str(key["instance"]), 10))


@dataclasses.dataclass(frozen=True, slots=True)
class CacheRecord:
    filepath: str
    key: ResourceKey
    digest: str | None = None
    tuning_name: str | None = None

    def to_json(self) -> dict[str, Any]:
        record: dict[str, Any] = {"filepath": self.filepath}
        if self.tuning_name is not None:
            record["tuningName"] = self.tuning_name
        if self.digest is not None:
            record["digest"] = self.digest
        record["key"] = {
            "type": self.key.type,
            "group": self.key.group,
            "instance": str(self.key.instance),
        }
        return record

    @classmethod
    def from_json(cls, raw: Mapping[str, Any]) -> "CacheRecord":
        return cls(
            filepath=str(raw["filepath"]),
            key=_key_from_json(raw["key"]),
            digest=raw.get("digest"),
            tuning_name=raw.get("tuningName"),
        )


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _read_cache(path: Path) -> dict[str, CacheRecord]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        records = [CacheRecord.from_json(item) for item in raw["keys"]]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise CacheLoadError(f"{path}: {exc}") from exc
    return {record.filepath: record for record in records}


def load_cache(path: Path | None, *, enabled: bool = True) -> dict[str, CacheRecord]:
    """Return the cached records, or an empty mapping when there is no usable cache."""
    if not enabled or path is None:
        print("[*] Cache disabled. Keys will be generated from XML.")
        return {}
    if not path.is_file():
        print("[*] No cache found. Keys will be generated from XML.")
        return {}
    try:
        records = _read_cache(path)
    except CacheLoadError as exc:
        print(f"[!] Error reading cache: {exc}")
        print("[*] Keys will be generated from XML.")
        return {}
    print(f"[*] Using cache: {path} ({len(records)} key(s))")
    return records


def _write_cache(path: Path, records: list[CacheRecord]) -> None:
    payload = json.dumps({"keys": [record.to_json() for record in records]}, indent=2)
    try:
        if not path.parent.exists():
            path.parent.mkdir(parents=True)
            print(f"[+] Created cache folder: {path.parent}")
        path.write_text(payload + "\n", encoding="utf-8")
    except OSError as exc:
        raise CacheSaveError(f"{path}: {exc}") from exc


def save_cache(
    path: Path | None,
    records: Mapping[str, CacheRecord],
    seen_paths: Collection[str],
    *,
    enabled: bool = True,
) -> bool:
    """Persist records for paths seen in this build; returns True when written.

    Records of files that were deleted or renamed since the last build are
    dropped here.
    """
    if not enabled or path is None:
        return False
    kept = [records[filepath] for filepath in sorted(records) if filepath in seen_paths]
    try:
        _write_cache(path, kept)
    except CacheSaveError as exc:
        print(f"[!] Failed to save cache: {exc}")
        return False
    print(f"[+] Saved cache: {path} ({len(kept)} key(s))")
    return True
