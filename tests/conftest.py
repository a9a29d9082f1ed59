from __future__ import annotations

import json
from pathlib import Path

import pytest

from build_config import BuildConfig, load_config


def tuning_xml(name: str, instance: int | str, type_attr: str = "trait", cls: str = "Trait") -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<I c="{cls}" i="{type_attr}" m="traits.traits" n="{name}" s="{instance}">\n'
        '  <T n="display_name">0x12345678</T>\n'
        "</I>\n"
    ).encode("utf-8")


def simdata_xml(name: str, schema: str = "Trait") -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<SimData version="0x00000101" u="0x00000000">\n'
        "  <Instances>\n"
        f'    <I name="{name}" schema="{schema}" type="Object">\n'
        '      <T name="ages">0x00000001</T>\n'
        "    </I>\n"
        "  </Instances>\n"
        "</SimData>\n"
    ).encode("utf-8")


def write_file(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def project(tmp_path: Path):
    """A minimal project folder with a build config and an empty source tree."""

    def make(**overrides) -> BuildConfig:
        raw = {
            "buildName": "MyMod",
            "buildFolders": ["build"],
            "sourceFolder": "src",
            "cacheFolder": "cache",
        }
        raw.update(overrides)
        config_path = tmp_path / "build-config.json"
        config_path.write_text(json.dumps(raw), encoding="utf-8")
        return load_config(config_path)

    (tmp_path / "src").mkdir()
    make.root = tmp_path
    make.src = tmp_path / "src"
    return make
