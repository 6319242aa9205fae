import struct

import pytest

from jisweb.codepage import ascii_to_ebcdic
from jisweb.scripts import Script, ScriptRegistry, parse_directory


def _entry(name, ttr, user_halfwords=0):
    raw_name = ascii_to_ebcdic(name.ljust(8).encode("ascii"))
    return (
        raw_name
        + ttr.to_bytes(3, "big")
        + bytes([user_halfwords])
        + b"\xAA" * (user_halfwords * 2)
    )


def _block(entries, end=False):
    body = b"".join(entries)
    if end:
        body += b"\xff" * 8
    used = 2 + len(body)
    block = struct.pack(">h", used) + body
    return b"\x00\x00" + block.ljust(256, b"\x00")


def test_parse_single_block_with_end_mark():
    data = _block([_entry("HELLO", 0x000102), _entry("ERROR", 0x000203)], end=True)
    assert parse_directory(data) == [("HELLO", 0x000102), ("ERROR", 0x000203)]


def test_parse_skips_user_data():
    data = _block([_entry("A", 5, user_halfwords=3), _entry("B", 6)], end=True)
    assert parse_directory(data) == [("A", 5), ("B", 6)]


def test_parse_stops_at_end_mark_across_blocks():
    data = (
        _block([_entry("FIRST", 1)])
        + _block([_entry("SECOND", 2)], end=True)
        + _block([_entry("HIDDEN", 3)])
    )
    assert parse_directory(data) == [("FIRST", 1), ("SECOND", 2)]


def test_parse_ignores_partial_block():
    data = _block([_entry("ONE", 7)]) + b"\x00\x00" + b"\x01" * 100
    assert parse_directory(data) == [("ONE", 7)]


def test_parse_empty_data():
    assert parse_directory(b"") == []


def _registry(unloaded=None):
    return ScriptRegistry(unload=unloaded.append if unloaded is not None else None)


def test_add_rejects_duplicate_ignoring_case():
    reg = _registry()
    assert reg.add("/", "error", "asp", "Error_init", "Error_exit", "Error_run")
    assert not reg.add("/", "ERROR", "ASP", "x", "y", "z")
    assert [s.name for s in reg] == ["error"]


def test_get_is_case_insensitive():
    reg = _registry()
    reg.add("/App/", "Page", "asp", "i", "e", "r")
    found = reg.get("/app/", "PAGE", "ASP")
    assert found is not None and found.name == "Page"
    assert reg.get("/other/", "page", "asp") is None


def test_new_script_needs_loading():
    reg = _registry()
    reg.add("/", "page", "asp", "i", "e", "r")
    script = reg.get("/", "page", "asp")
    assert (script.ttr, script.handle, script.entry) == (0, None, None)


def test_add_loaded_keeps_order_and_allows_duplicates():
    reg = _registry()
    reg.add("/", "a", "asp", "i", "e", "r")
    first = Script("/", "b", "asp", "i", "e", "r", handle=object(), ttr=9)
    second = Script("/", "b", "asp", "i", "e", "r", ttr=10)
    reg.add_loaded(first)
    reg.add_loaded(second)
    assert [s.name for s in reg] == ["a", "b", "b"]
    assert reg.get("/", "b", "asp") is first


def test_remove_unloads_loaded_script():
    unloaded = []
    reg = _registry(unloaded)
    loaded = Script("/", "page", "asp", "i", "e", "r", handle="module", ttr=4)
    reg.add_loaded(loaded)
    assert reg.remove("/", "PAGE", "asp")
    assert unloaded == [loaded]
    assert reg.get("/", "page", "asp") is None


def test_remove_unloaded_script_does_not_call_unload():
    unloaded = []
    reg = _registry(unloaded)
    reg.add("/", "page", "asp", "i", "e", "r")
    assert reg.remove("/", "page", "asp")
    assert unloaded == []


def test_remove_unknown_returns_false():
    reg = _registry()
    assert reg.remove("/", "missing", "asp") is False


def test_invalidate():
    reg = _registry()
    reg.add_loaded(Script("/", "page", "asp", "i", "e", "r", ttr=12))
    assert reg.invalidate("/", "page", "asp")
    assert reg.get("/", "page", "asp").ttr == 0
    assert reg.invalidate("/", "nothing", "asp") is False


def test_apply_directory_marks_only_changed():
    reg = _registry()
    same = Script("/", "same", "asp", "i", "e", "r", ttr=100)
    changed = Script("/", "changed", "asp", "i", "e", "r", ttr=200)
    reg.add_loaded(same)
    reg.add_loaded(changed)
    marked = reg.apply_directory([("SAME", 100), ("CHANGED", 201), ("OTHER", 5)])
    assert marked == [changed]
    assert (same.ttr, changed.ttr) == (100, 0)


def test_apply_directory_matches_first_script_by_name():
    reg = _registry()
    first = Script("/a/", "page", "asp", "i", "e", "r", ttr=1)
    second = Script("/b/", "page", "asp", "i", "e", "r", ttr=1)
    reg.add_loaded(first)
    reg.add_loaded(second)
    reg.apply_directory([("PAGE", 2)])
    assert (first.ttr, second.ttr) == (0, 1)


def test_parse_then_apply_directory():
    reg = _registry()
    reg.add_loaded(Script("/", "hello", "asp", "i", "e", "r", ttr=0x010203))
    data = _block([_entry("HELLO", 0x010203)], end=True)
    assert reg.apply_directory(parse_directory(data)) == []
    assert reg.get("/", "hello", "asp").ttr == 0x010203


@pytest.mark.parametrize("name", ["x", "ABCDEFGH"])
def test_parse_name_lengths(name):
    data = _block([_entry(name, 1)], end=True)
    assert parse_directory(data) == [(name, 1)]