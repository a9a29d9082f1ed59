#!/usr/bin/env python3
"""Sims 4 package extractor.

Splits a .package back into a source tree that ``s4_build.py`` can rebuild:

    <out>/xml/<subfolder>/<name>[.G<group>].xml     tuning
    <out>/xml/<subfolder>/<name>.SimData.xml        SimData
    <out>/packages/<input name>                     everything else

The subfolder of a tuning file is its ``i`` attribute (``trait``, ``buff``,
...). SimData files follow the tuning they belong to; when that tuning is not
in the package they land in ``misc``. Packages do not record where files
came from, so the layout is a best guess rather than the original tree.

Only XML SimData (as written by ``s4_build.py``) becomes ``.SimData.xml``.
Game-built packages hold binary SimData, which stays in the pass-through
package under ``packages/``.

Usage:
    python s4_extract.py <input.package> <output_dir>
    python s4_extract.py <folder> <output_dir>
"""
from __future__ import annotations

import argparse
import dataclasses
import os
import re
import sys
from pathlib import Path
from typing import Iterable, Tuple, Union

from build_errors import ResourceParseError
from dbpf_format import Package, PackageEntry, extract_entries, format_group
from resource_types import BinaryResourceType, TuningResourceType
from xml_resources import looks_like_xml, parse_simdata, parse_tuning, strip_name_prefix

XML_DIR = "xml"
PKG_DIR = "packages"
DEFAULT_SUBFOLDER = "misc"
TUNING_TYPES = frozenset(int(member) for member in TuningResourceType)
UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclasses.dataclass(slots=True)
class ExtractResult:
    tuning: list[Path] = dataclasses.field(default_factory=list)
    simdata: list[Path] = dataclasses.field(default_factory=list)
    leftover: Path | None = None
    leftover_count: int = 0

    @property
    def total(self) -> int:
        return len(self.tuning) + len(self.simdata) + self.leftover_count


def _sanitize(name: str, fallback: str) -> str:
    cleaned = UNSAFE_CHARS.sub("_", name.replace("..", "")).strip(" .")
    return cleaned or fallback


def tuning_filename(name: str, group: int) -> str:
    base = _sanitize(strip_name_prefix(name), "unnamed")
    if group == 0:
        return f"{base}.xml"
    return f"{base}.G{format_group(group)}.xml"


def simdata_filename(name: str) -> str:
    return f"{_sanitize(strip_name_prefix(name), 'unnamed')}.SimData.xml"


def _write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)


def _partition(package: Package) -> Tuple[list[PackageEntry], list[PackageEntry]]:
    tunings: list[PackageEntry] = []
    simdatas: list[PackageEntry] = []
    for entry in package:
        if entry.key.type == BinaryResourceType.SIMDATA:
            simdatas.append(entry)
        elif entry.key.type in TUNING_TYPES:
            tunings.append(entry)
    return tunings, simdatas


def extract_package(
    package_path: Union[str, os.PathLike[str]],
    out_root: Union[str, os.PathLike[str]],
    *,
    verbose: bool = True,
) -> ExtractResult:
    path = Path(package_path)
    out_root_path = Path(out_root)
    if verbose:
        print(f"[*] Extracting {path}")
    package = Package(extract_entries(path.read_bytes(), load_raw=True))
    tunings, simdatas = _partition(package)
    result = ExtractResult()
    subfolders: dict[str, str] = {}

    for entry in tunings:
        payload = entry.payload()
        try:
            tuning = parse_tuning(payload)
        except ResourceParseError as exc:
            print(f"  [!] {entry.key}: {exc}; kept in the leftover package")
            continue
        subfolder = _sanitize(tuning.attributes.get("i", ""), DEFAULT_SUBFOLDER)
        subfolders[tuning.root_name] = subfolder
        out_path = out_root_path / XML_DIR / subfolder / tuning_filename(tuning.root_name, entry.key.group)
        _write(out_path, payload)
        package.delete(entry.key)
        result.tuning.append(out_path)
        if verbose:
            print(f"  [tuning] {out_path.relative_to(out_root_path)} ({len(payload)} bytes)")

    for entry in simdatas:
        payload = entry.payload()
        if not looks_like_xml(payload):
            print(f"  [!] {entry.key}: binary SimData cannot be written as XML; kept in the leftover package")
            continue
        try:
            simdata = parse_simdata(payload)
        except ResourceParseError as exc:
            print(f"  [!] {entry.key}: {exc}; kept in the leftover package")
            continue
        subfolder = subfolders.get(simdata.instance_name, DEFAULT_SUBFOLDER)
        out_path = out_root_path / XML_DIR / subfolder / simdata_filename(simdata.instance_name)
        _write(out_path, payload)
        package.delete(entry.key)
        result.simdata.append(out_path)
        if verbose:
            print(f"  [simdata] {out_path.relative_to(out_root_path)} ({len(payload)} bytes)")

    if len(package) > 0:
        out_path = out_root_path / PKG_DIR / path.name
        _write(out_path, package.to_bytes())
        result.leftover = out_path
        result.leftover_count = len(package)
        if verbose:
            print(f"  [package] {out_path.relative_to(out_root_path)} ({len(package)} resource(s))")

    if verbose:
        print(
            f"[+] Extracted {len(result.tuning)} tuning, {len(result.simdata)} SimData "
            f"and {result.leftover_count} other resource(s) to {out_root_path}"
        )
    return result


def _gather_inputs(source: Path) -> Iterable[Tuple[Path, Path]]:
    if source.is_file():
        if source.suffix.lower() != ".package":
            raise ValueError(f"Input file must end with .package: {source}")
        yield source, Path()
        return
    if not source.is_dir():
        raise ValueError(f"Input path is neither file nor directory: {source}")
    candidates = sorted(p for p in source.rglob("*.package") if p.is_file())
    if not candidates:
        raise ValueError(f"No .package files found under {source}")
    for pack in candidates:
        rel = pack.relative_to(source)
        yield pack, rel.with_suffix("")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("source", help=".package file or directory to extract")
    parser.add_argument("out_dir", help="Destination folder for extracted files")
    return parser.parse_args(argv)


def main() -> None:
    args = _parse_args(sys.argv[1:])
    source = Path(args.source)
    out_root = Path(args.out_dir)

    try:
        jobs = list(_gather_inputs(source))
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    total = 0
    failures = 0
    for package_path, rel_dest in jobs:
        target_root = out_root if rel_dest == Path() else out_root / rel_dest
        try:
            result = extract_package(package_path, target_root)
        except (OSError, ValueError) as exc:
            print(f"Error while extracting {package_path}: {exc}")
            failures += 1
            continue
        total += result.total

    print(f"[+] Completed extraction of {len(jobs)} package(s), total resources: {total}")
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
