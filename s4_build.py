#!/usr/bin/env python3
"""Sims 4 package builder.

Globs tuning XML, SimData XML and pre-built packages out of the configured
source folder, gives every XML file a resource key, and writes the combined
``<buildName>.package`` into each build folder. Keys are kept in a cache so
incremental builds can reuse them.

Tuning files are always resolved before SimData files: a SimData key copies
the instance of the tuning file with the same name.

Usage:
    python s4_build.py [--config build-config.json] [--no-cache] [--fail-fast]
"""
from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Sequence

from build_config import DEFAULT_CONFIG_NAME, BuildConfig, glob_sources, load_config
from build_errors import BuildError, ConfigError
from dbpf_format import Package, PackageEntry, extract_entries
from key_cache import CacheRecord, content_digest, load_cache, save_cache
from key_resolver import KeyResolver, check_classification, describe_key
from xml_resources import parse_simdata, parse_tuning


@dataclasses.dataclass(slots=True)
class SourceFiles:
    tuning: list[Path]
    simdata: list[Path]
    packages: list[Path]


@dataclasses.dataclass(slots=True)
class BuildResult:
    package: Package
    buffer: bytes
    written: list[Path] = dataclasses.field(default_factory=list)
    errors: list[tuple[str, Exception]] = dataclasses.field(default_factory=list)
    tuning_count: int = 0
    simdata_count: int = 0
    merged_count: int = 0


def _rel(config: BuildConfig, path: Path) -> str:
    try:
        return path.relative_to(config.source_folder).as_posix()
    except ValueError:
        return path.as_posix()


def collect_sources(config: BuildConfig) -> SourceFiles:
    return SourceFiles(
        tuning=glob_sources(config.source_folder, config.tuning_patterns),
        simdata=glob_sources(config.source_folder, config.simdata_patterns),
        packages=glob_sources(config.source_folder, config.package_patterns),
    )


def _file_failed(rel: str, exc: Exception, result: BuildResult, *, fail_fast: bool) -> None:
    print(f"[!] {rel}: {exc}")
    result.errors.append((rel, exc))
    if fail_fast:
        raise exc


def _current_digests(config: BuildConfig, paths: Sequence[Path]) -> dict[str, str]:
    digests: dict[str, str] = {}
    for path in paths:
        try:
            digests[_rel(config, path)] = content_digest(path.read_bytes())
        except OSError:
            continue  # reported when the tuning phase reaches this file
    return digests


def _build_tuning(
    config: BuildConfig,
    paths: Sequence[Path],
    resolver: KeyResolver,
    package: Package,
    cache: dict[str, CacheRecord],
    records: dict[str, CacheRecord],
    result: BuildResult,
) -> None:
    for path in paths:
        rel = _rel(config, path)
        try:
            data = path.read_bytes()
            digest = content_digest(data)
            tuning = parse_tuning(data)
            record = cache.get(rel)
            cached = record.key if record is not None and record.digest == digest else None
            key = resolver.resolve_tuning_key(rel, tuning, cached)
        except (BuildError, OSError) as exc:
            records.pop(rel, None)
            _file_failed(rel, exc, result, fail_fast=config.fail_fast)
            continue
        package.add(key, tuning.to_bytes(), compress=config.compress)
        records[rel] = CacheRecord(rel, key, digest, tuning.root_name)
        result.tuning_count += 1


def _build_simdata(
    config: BuildConfig,
    paths: Sequence[Path],
    resolver: KeyResolver,
    package: Package,
    records: dict[str, CacheRecord],
    result: BuildResult,
) -> None:
    for path in paths:
        rel = _rel(config, path)
        try:
            data = path.read_bytes()
            simdata = parse_simdata(data)
            key = resolver.resolve_simdata_key(rel, simdata)
        except (BuildError, OSError) as exc:
            records.pop(rel, None)
            _file_failed(rel, exc, result, fail_fast=config.fail_fast)
            continue
        package.add(key, simdata.to_bytes(), compress=config.compress)
        records[rel] = CacheRecord(rel, key, content_digest(data))
        result.simdata_count += 1


def _merge_packages(
    config: BuildConfig,
    paths: Sequence[Path],
    package: Package,
    result: BuildResult,
) -> None:
    for path in paths:
        rel = _rel(config, path)
        try:
            entries = extract_entries(path.read_bytes(), load_raw=True)
        except (OSError, ValueError) as exc:
            _file_failed(rel, exc, result, fail_fast=config.fail_fast)
            continue
        replaced = package.add_all(entries)
        if replaced:
            print(f"[!] {rel}: replaced {len(replaced)} resource(s) with the same key")
        result.merged_count += 1


def _preview(entries: Sequence[PackageEntry], limit: int = 5) -> None:
    total = len(entries)
    print(f"[*] Prepared {total} resource(s)")
    for idx, entry in enumerate(entries[:limit]):
        print(f"    [{idx}] {describe_key(entry.key)} :: size={entry.size} bytes")
    if total > limit:
        print(f"    ... {total - limit} more")


def _write_package(folders: Sequence[Path], package_name: str, buffer: bytes) -> list[Path]:
    written: list[Path] = []
    for folder in folders:
        if not folder.exists():
            folder.mkdir(parents=True)
            print(f"[+] Created folder: {folder}")
        output_path = folder / package_name
        output_path.write_bytes(buffer)
        print(f"[+] Wrote package: {output_path} ({len(buffer)} bytes)")
        written.append(output_path)
    return written


def build_package(config: BuildConfig, *, dry_run: bool = False) -> BuildResult:
    """Run one build. Fatal errors propagate before any file is written."""
    config.validate()
    sources = collect_sources(config)
    tuning_rel = [_rel(config, path) for path in sources.tuning]
    simdata_rel = [_rel(config, path) for path in sources.simdata]
    check_classification(tuning_rel, simdata_rel)

    cache = load_cache(config.cache_path, enabled=config.use_cache)
    records = dict(cache)
    resolver = KeyResolver()
    if cache:
        resolver.seed_from_cache(cache, _current_digests(config, sources.tuning))

    package = Package()
    result = BuildResult(package=package, buffer=b"")

    _build_tuning(config, sources.tuning, resolver, package, cache, records, result)
    print(f"[+] Tuning built: {result.tuning_count}/{len(sources.tuning)} file(s)")
    _build_simdata(config, sources.simdata, resolver, package, records, result)
    print(f"[+] SimData built: {result.simdata_count}/{len(sources.simdata)} file(s)")
    _merge_packages(config, sources.packages, package, result)
    print(f"[+] Packages merged: {result.merged_count}/{len(sources.packages)} file(s)")

    result.buffer = package.to_bytes()
    _preview(package.entries)
    if dry_run:
        print("[!] Dry-run requested; skipping package and cache writes")
        return result

    result.written = _write_package(config.build_folders, config.package_name, result.buffer)
    seen_paths = set(tuning_rel) | set(simdata_rel)
    save_cache(config.cache_path, records, seen_paths, enabled=config.use_cache)
    if result.errors:
        print(f"[!] {len(result.errors)} file(s) were skipped")
    return result


def build_cli() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build a Sims 4 .package from XML sources")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_NAME,
        help="Path to the build config (default: %(default)s)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the key cache",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Abort on the first file that cannot be built",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve keys and preview the package without writing anything",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_cli()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}")
    if args.no_cache:
        config.use_cache = False
    if args.fail_fast:
        config.fail_fast = True

    try:
        build_package(config, dry_run=args.dry_run)
    except (BuildError, OSError, ValueError) as exc:
        raise SystemExit(f"Build aborted: {exc}")
    print("[+] Build complete")


if __name__ == "__main__":
    main()
