from __future__ import annotations

import json

from dbpf_format import ResourceKey
from key_cache import CacheRecord, content_digest, load_cache, save_cache

BIG_INSTANCE = 0xFEDCBA9876543211  # not representable as a double


def test_instances_are_saved_as_decimal_strings(tmp_path):
    path = tmp_path / "cache" / "cache.json"
    record = CacheRecord("t.xml", ResourceKey(1, 2, BIG_INSTANCE), "abc", "my_trait")
    assert save_cache(path, {"t.xml": record}, {"t.xml"})

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["keys"][0]["key"]["instance"] == str(BIG_INSTANCE)
    assert raw["keys"][0]["tuningName"] == "my_trait"

    loaded = load_cache(path)
    assert loaded == {"t.xml": record}


def test_unseen_paths_are_pruned(tmp_path):
    path = tmp_path / "cache.json"
    records = {
        "kept.xml": CacheRecord("kept.xml", ResourceKey(1, 0, 1)),
        "deleted.xml": CacheRecord("deleted.xml", ResourceKey(1, 0, 2)),
    }
    save_cache(path, records, {"kept.xml"})
    assert set(load_cache(path)) == {"kept.xml"}


def test_missing_cache_is_empty(tmp_path, capsys):
    assert load_cache(tmp_path / "nope.json") == {}
    assert "No cache found" in capsys.readouterr().out


def test_corrupt_cache_warns_and_is_empty(tmp_path, capsys):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_cache(path) == {}
    assert "[!] Error reading cache" in capsys.readouterr().out

    path.write_text(json.dumps({"keys": [{"filepath": "a.xml"}]}), encoding="utf-8")
    assert load_cache(path) == {}


def test_disabled_cache_neither_reads_nor_writes(tmp_path):
    path = tmp_path / "cache.json"
    record = CacheRecord("a.xml", ResourceKey(1, 0, 1))
    assert not save_cache(path, {"a.xml": record}, {"a.xml"}, enabled=False)
    assert not path.exists()

    save_cache(path, {"a.xml": record}, {"a.xml"})
    assert load_cache(path, enabled=False) == {}


def test_write_failure_is_not_fatal(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a folder", encoding="utf-8")
    path = blocker / "cache.json"
    record = CacheRecord("a.xml", ResourceKey(1, 0, 1))
    assert not save_cache(path, {"a.xml": record}, {"a.xml"})
    assert "[!] Failed to save cache" in capsys.readouterr().out


def test_digest_changes_with_content():
    assert content_digest(b"a") == content_digest(b"a")
    assert content_digest(b"a") != content_digest(b"b")


def test_string_and_object_keys_both_load(tmp_path):
    path = tmp_path / "cache.json"
    raw = {
        "keys": [
            {"filepath": "a.xml", "key": {"type": 1, "group": 0, "instance": "5"}},
            {"filepath": "b.xml", "tuningName": "b", "key": "1_0_" + str(BIG_INSTANCE)},
        ]
    }
    path.write_text(json.dumps(raw), encoding="utf-8")
    loaded = load_cache(path)
    assert loaded["a.xml"].key == ResourceKey(1, 0, 5)
    assert loaded["b.xml"].key == ResourceKey(1, 0, BIG_INSTANCE)
    assert loaded["b.xml"].tuning_name == "b"


def test_malformed_string_key_rejects_cache(tmp_path, capsys):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"keys": [{"filepath": "a.xml", "key": "1_0"}]}), encoding="utf-8")
    assert load_cache(path) == {}
    assert "[!] Error reading cache" in capsys.readouterr().out
