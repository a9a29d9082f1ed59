from __future__ import annotations

import sys

import pytest

import s4_build
import s4_extract
from conftest import simdata_xml, tuning_xml, write_file
from dbpf_format import Package, ResourceKey, extract_entries
from resource_types import SIMDATA_GROUPS, BinaryResourceType, TuningResourceType


def test_filenames():
    assert s4_extract.tuning_filename("creator:my_trait", 0) == "my_trait.xml"
    assert s4_extract.tuning_filename("creator:my_buff", 0xAB) == "my_buff.G000000AB.xml"
    assert s4_extract.tuning_filename("a:b:c", 0) == "b_c.xml"
    assert s4_extract.simdata_filename("creator:my_trait") == "my_trait.SimData.xml"


def test_extract_rebuilds_source_tree(project, tmp_path):
    tuning = tuning_xml("creator:my_trait", 12345)
    simdata = simdata_xml("creator:my_trait")
    buff = tuning_xml("creator:my_buff", 555, "buff", "Buff")
    write_file(project.src / "a" / "my_trait.xml", tuning)
    write_file(project.src / "b" / "my_trait.SimData.xml", simdata)
    write_file(project.src / "c" / "my_buff.G00000010.xml", buff)
    prebuilt = Package()
    prebuilt.add(ResourceKey(0x220557DA, 0, 1), b"STBL" * 16)
    write_file(project.src / "mods" / "strings.package", prebuilt.to_bytes())
    s4_build.build_package(project())

    out = tmp_path / "extracted"
    result = s4_extract.extract_package(project.root / "build" / "MyMod.package", out)

    assert (out / "xml" / "trait" / "my_trait.xml").read_bytes() == tuning
    assert (out / "xml" / "trait" / "my_trait.SimData.xml").read_bytes() == simdata
    assert (out / "xml" / "buff" / "my_buff.G00000010.xml").read_bytes() == buff
    assert result.leftover == out / "packages" / "MyMod.package"
    leftovers = extract_entries(result.leftover.read_bytes())
    assert [entry.key for entry in leftovers] == [ResourceKey(0x220557DA, 0, 1)]
    assert result.total == 4


def test_simdata_without_tuning_goes_to_misc(tmp_path):
    package = Package()
    package.add(
        ResourceKey(BinaryResourceType.SIMDATA, SIMDATA_GROUPS[TuningResourceType.TRAIT], 7),
        simdata_xml("creator:lonely"),
    )
    source = write_file(tmp_path / "only_simdata.package", package.to_bytes())
    result = s4_extract.extract_package(source, tmp_path / "out", verbose=False)
    assert result.simdata == [tmp_path / "out" / "xml" / "misc" / "lonely.SimData.xml"]
    assert result.leftover is None
    assert not (tmp_path / "out" / "packages").exists()


def test_binary_simdata_is_passed_through(tmp_path):
    package = Package()
    key = ResourceKey(BinaryResourceType.SIMDATA, 0, 9)
    package.add(key, b"DATA\x00\x01\x02\x03")
    source = write_file(tmp_path / "binary.package", package.to_bytes())
    result = s4_extract.extract_package(source, tmp_path / "out", verbose=False)
    assert result.simdata == []
    assert [entry.key for entry in extract_entries(result.leftover.read_bytes())] == [key]


def test_gather_inputs_rejects_non_packages(tmp_path):
    other = write_file(tmp_path / "notes.txt", b"")
    with pytest.raises(ValueError):
        list(s4_extract._gather_inputs(other))
    with pytest.raises(ValueError):
        list(s4_extract._gather_inputs(tmp_path))


def _trait_package(name, instance):
    package = Package()
    package.add(ResourceKey(TuningResourceType.TRAIT, 0, instance), tuning_xml(f"creator:{name}", instance))
    return package.to_bytes()


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["s4_extract.py", *map(str, args)])
    with pytest.raises(SystemExit) as excinfo:
        s4_extract.main()
    return excinfo.value.code


def test_main_extracts_folder_into_matching_subfolders(monkeypatch, tmp_path, capsys):
    source = tmp_path / "mods"
    write_file(source / "first.package", _trait_package("first", 1))
    write_file(source / "nested" / "second.package", _trait_package("second", 2))
    out = tmp_path / "out"

    assert run_main(monkeypatch, source, out) == 0
    assert (out / "first" / "xml" / "trait" / "first.xml").is_file()
    assert (out / "nested" / "second" / "xml" / "trait" / "second.xml").is_file()
    assert "Completed extraction of 2 package(s)" in capsys.readouterr().out


def test_main_single_file_extracts_into_output_root(monkeypatch, tmp_path):
    source = write_file(tmp_path / "solo.package", _trait_package("solo", 3))
    out = tmp_path / "out"
    assert run_main(monkeypatch, source, out) == 0
    assert (out / "xml" / "trait" / "solo.xml").is_file()


def test_main_exit_code_reflects_failed_packages(monkeypatch, tmp_path, capsys):
    source = tmp_path / "mods"
    write_file(source / "good.package", _trait_package("good", 1))
    write_file(source / "broken.package", b"not a package at all")
    out = tmp_path / "out"

    assert run_main(monkeypatch, source, out) == 1
    assert (out / "good" / "xml" / "trait" / "good.xml").is_file()
    assert "Error while extracting" in capsys.readouterr().out


def test_main_rejects_non_package_input(monkeypatch, tmp_path, capsys):
    other = write_file(tmp_path / "notes.txt", b"")
    assert run_main(monkeypatch, other, tmp_path / "out") == 1
    assert "Error:" in capsys.readouterr().out
