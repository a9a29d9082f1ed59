"""Assign resource keys to tuning and SimData source files.

A ``KeyResolver`` lives for exactly one build. Every tuning file must be
resolved before the first SimData file, because a SimData key is derived
from the key of the tuning it names.
"""
from __future__ import annotations

import dataclasses
import re
from typing import Iterable, Mapping

from build_errors import (
    ClassificationConflictError,
    DuplicateInstanceError,
    DuplicateNameError,
    InvalidTypeError,
    MissingTuningError,
    UnmappedGroupError,
)
from dbpf_format import ResourceKey, format_group
from key_cache import CacheRecord
from resource_types import SIMDATA_GROUPS, BinaryResourceType, TuningResourceType
from xml_resources import SimDataDocument, TuningDocument

# "buff.G0000ABCD.xml" -> group 0x0000ABCD
GROUP_SUFFIX_PATTERN = re.compile(r"(?:^|\.)G([0-9A-Fa-f]{8})\.[^.]+$")


@dataclasses.dataclass(frozen=True, slots=True)
class TuningEntry:
    path: str
    declared_name: str
    type_attr: str
    instance: int
    key: ResourceKey


@dataclasses.dataclass(frozen=True, slots=True)
class SimDataEntry:
    path: str
    referenced_name: str
    key: ResourceKey


def group_from_filename(path: str) -> int:
    filename = path.replace("\\", "/").rsplit("/", 1)[-1]
    match = GROUP_SUFFIX_PATTERN.search(filename)
    if match is None:
        return 0
    return int(match.group(1), 16)


def check_classification(tuning_paths: Iterable[str], simdata_paths: Iterable[str]) -> None:
    tuning = set(tuning_paths)
    for path in simdata_paths:
        if path in tuning:
            raise ClassificationConflictError(path)


def simdata_group_for(tuning_type: int) -> int:
    try:
        resource_type = TuningResourceType(tuning_type)
    except ValueError:
        raise UnmappedGroupError(
            f"Resource type 0x{tuning_type:08X} is not a known tuning type"
        ) from None
    group = SIMDATA_GROUPS.get(resource_type)
    if group is None:
        raise UnmappedGroupError(f"No SimData group is known for {resource_type.name} tuning")
    return group


class KeyResolver:
    def __init__(self) -> None:
        self.tuning_names_to_keys: dict[str, ResourceKey] = {}
        self.tuning_instances: set[int] = set()
        self.tuning_entries: list[TuningEntry] = []
        self.simdata_entries: list[SimDataEntry] = []
        # name / instance -> path that owns it, including claims carried over from the cache
        self._name_owners: dict[str, str] = {}
        self._instance_owners: dict[int, str] = {}
        self._simdata_owners: dict[ResourceKey, str] = {}

    def seed_from_cache(self, records: Mapping[str, CacheRecord], current_digests: Mapping[str, str]) -> int:
        """Claim names and instances of cached tuning files that are unchanged.

        Only records whose file still exists with the same content take part,
        so a new file reusing one of their names or instances is rejected
        even if it happens to be resolved first.
        """
        seeded = 0
        for path, record in records.items():
            if record.tuning_name is None or record.digest is None:
                continue
            if current_digests.get(path) != record.digest:
                continue
            self._name_owners.setdefault(record.tuning_name, path)
            self._instance_owners.setdefault(record.key.instance, path)
            seeded += 1
        return seeded

    def _check_name(self, path: str, name: str) -> None:
        if name in self.tuning_names_to_keys:
            raise DuplicateNameError(name, self._name_owners.get(name))
        owner = self._name_owners.get(name)
        if owner is not None and owner != path:
            raise DuplicateNameError(name, owner)

    def _check_instance(self, path: str, instance: int) -> None:
        owner = self._instance_owners.get(instance)
        if instance in self.tuning_instances or (owner is not None and owner != path):
            raise DuplicateInstanceError(instance, owner)

    def _tuning_type(self, type_attr: str | None) -> TuningResourceType:
        resource_type = TuningResourceType.parse(type_attr)
        if resource_type is None:
            raise InvalidTypeError(f"Unknown tuning type attribute i={type_attr!r}")
        if resource_type == TuningResourceType.TUNING:
            raise InvalidTypeError(
                f"Tuning type i={type_attr!r} is the generic module type, not an instance type"
            )
        return resource_type

    def resolve_tuning_key(
        self,
        path: str,
        tuning: TuningDocument,
        cached: ResourceKey | None = None,
    ) -> ResourceKey:
        name = tuning.root_name
        self._check_name(path, name)
        if cached is not None:
            key = cached
        else:
            resource_type = self._tuning_type(tuning.type_attr)
            key = ResourceKey(int(resource_type), group_from_filename(path), tuning.instance)
        self._check_instance(path, key.instance)

        self.tuning_names_to_keys[name] = key
        self.tuning_instances.add(key.instance)
        self._name_owners[name] = path
        self._instance_owners[key.instance] = path
        self.tuning_entries.append(
            TuningEntry(path, name, tuning.type_attr or "", key.instance, key)
        )
        return key

    def resolve_simdata_key(self, path: str, simdata: SimDataDocument) -> ResourceKey:
        name = simdata.instance_name
        tuning_key = self.tuning_names_to_keys.get(name)
        if tuning_key is None:
            raise MissingTuningError(name)
        group = simdata_group_for(tuning_key.type)
        key = ResourceKey(int(BinaryResourceType.SIMDATA), group, tuning_key.instance)
        owner = self._simdata_owners.get(key)
        if owner is not None and owner != path:
            raise DuplicateNameError(name, owner, kind="SimData")
        self._simdata_owners[key] = path
        self.simdata_entries.append(SimDataEntry(path, name, key))
        return key


def describe_key(key: ResourceKey) -> str:
    return f"type=0x{key.type:08X} group=0x{format_group(key.group)} instance={key.instance}"
