import logging

import pytest

from stringprops import exceptions
from stringprops import expressions
from stringprops import preferences
from stringprops import sources
from stringprops.preferences import PreferenceNode

from tests.helpers import quiet_settings


def open_node(data=None, eval_disabled=False, **values):
    return PreferenceNode.open(
        sources.MemorySource(data),
        evaluator=expressions.MapExpression(expressions.dict_mapper(values)),
        settings=quiet_settings(eval_disabled),
    )


def test_open_missing_source_gives_empty_tree(caplog):
    with caplog.at_level(logging.WARNING):
        root = open_node()
    assert root.keys() == []
    assert root.children_names() == []
    assert "does not exist" in caplog.text


def test_open_broken_source_logs_and_keeps_partial_tree(caplog):
    with caplog.at_level(logging.WARNING):
        root = open_node(b"a=1\nb=\\u00zz\n")
    assert root.get("a") == "1"
    assert "Error loading preferences" in caplog.text


def test_paths_and_children():
    root = open_node(b"top=1\ndb.primary.host=h1\ndb.replica.host=h2\ndb.timeout=5\n")
    assert root.absolute_path() == "/"
    primary = root.node("db/primary")
    assert primary.absolute_path() == "/db/primary"
    assert primary is root.child("db").child("primary")
    assert primary.parent.name == "db"
    assert root.keys() == ["top"]
    assert root.children_names() == ["db"]
    assert root.child("db").keys() == ["timeout"]
    assert root.child("db").children_names() == ["primary", "replica"]
    assert primary.get("host") == "h1"


def test_invalid_child_names():
    root = open_node()
    for name in ["", "a/b"]:
        with pytest.raises(ValueError):
            root.child(name)


def test_children_write_into_shared_tree():
    root = open_node()
    root.node("a/b").put("c", "1")
    assert root.data.get("a.b.c") == "1"
    assert root.children_names() == ["a"]
    root.node("a/b").remove("c")
    assert root.data.root_view().is_empty()


def test_get_evaluates_placeholders():
    root = open_node(b"url=http://${HOST}:${PORT:80}/\n", HOST="example.com")
    assert root.get("url") == "http://example.com:80/"
    assert root.get("missing", "default") == "default"


def test_get_falls_back_to_raw_value_on_bad_expression(caplog):
    root = open_node(b"a.bad=${bad\n")
    with caplog.at_level(logging.WARNING):
        assert root.child("a").get("bad") == "${bad"
    assert "Error in eval of /a/bad" in caplog.text


def test_global_eval_switch():
    root = open_node(b"v=${HOST}\n", eval_disabled=True, HOST="h")
    assert root.get("v") == "${HOST}"


def test_node_eval_switch_is_read_at_construction():
    root = open_node(b"v=${HOST}\na.v=${HOST}\na.preferences.evalget.disabled=TRUE\n", HOST="h")
    assert root.get("v") == "h"
    assert root.child("a").eval_disabled
    assert root.child("a").get("v") == "${HOST}"


def test_node_eval_switch_follows_puts():
    root = open_node(b"v=${HOST}\n", HOST="h")
    root.put(preferences.LOCAL_EVAL_DISABLED_KEY, "true")
    assert root.get("v") == "${HOST}"
    root.put(preferences.LOCAL_EVAL_DISABLED_KEY, "false")
    assert root.get("v") == "h"


def test_node_eval_switch_is_not_retroactive_for_existing_nodes():
    root = open_node(b"a.v=${HOST}\n", HOST="h")
    a = root.child("a")
    root.data.set("a." + preferences.LOCAL_EVAL_DISABLED_KEY, "true")
    assert a.get("v") == "h"


def test_typed_getters():
    root = open_node(b"i=42\nf=2.5\nb=TRUE\nbad=x\n")
    assert root.get_int("i") == 42
    assert root.get_int("bad", 7) == 7
    assert root.get_int("missing") is None
    assert root.get_float("f") == 2.5
    assert root.get_float("bad", 1.0) == 1.0
    assert root.get_boolean("b") is True
    assert root.get_boolean("bad", False) is False
    assert root.get_boolean("missing", True) is True


def test_remove_node_is_unsupported():
    root = open_node()
    with pytest.raises(exceptions.UnsupportedOperation):
        root.child("a").remove_node()


def test_flush_writes_only_when_dirty():
    source = sources.MemorySource(b"a=1\n")
    root = PreferenceNode.open(source, settings=quiet_settings())
    source.data = b"untouched"
    root.flush()
    assert source.data == b"untouched"
    root.node("x/y").put("z", "\u20ac")
    assert root.is_dirty()
    root.sync()
    assert not root.is_dirty()
    lines = source.data.decode("ascii").splitlines()
    assert lines[0] == "#stringprops.preferences.PreferenceNode"
    assert lines[2:] == ["a=1", "x.y.z=\\u20AC"]


def test_flush_and_reopen_file(tmp_path):
    source = sources.FileSource(tmp_path / "prefs.properties")
    root = PreferenceNode.open(source, settings=quiet_settings())
    root.node("db").put("host", "h1")
    root.node("db").child("hosts").data.set_sequence(["a", "b"])
    root.flush()
    again = PreferenceNode.open(source, settings=quiet_settings())
    assert again.node("db").get("host") == "h1"
    assert again.node("db/hosts").data.get_sequence() == ["a", "b"]


def test_reload_replaces_tree():
    source = sources.MemorySource(b"a=1\n")
    root = open_node(b"a=1\n")
    root.source = source
    root.put("local", "x")
    source.data = b"a=2\nb=3\n"
    root.reload()
    assert root.get("a") == "2"
    assert root.get("local") is None
    assert not root.is_dirty()


def test_failed_reload_keeps_current_state(caplog):
    source = sources.MemorySource(b"a=1\n")
    root = PreferenceNode.open(source, settings=quiet_settings())
    root.put("b", "2")
    source.data = b"a=9\nc=\\u00zz\n"
    with caplog.at_level(logging.WARNING):
        with pytest.raises(exceptions.LoadFailure):
            root.reload()
    assert root.get("a") == "1"
    assert root.get("b") == "2"
    assert root.is_dirty()
    source.data = None
    with pytest.raises(exceptions.LoadFailure):
        root.reload()
    assert root.get("a") == "1"


def test_open_uses_settings_source(tmp_path):
    path = tmp_path / "from-settings.properties"
    path.write_bytes(b"k=v\n")
    settings = quiet_settings()._replace(source=str(path))
    root = PreferenceNode.open(settings=settings)
    assert root.get("k") == "v"
    assert isinstance(root.source, sources.FileSource)


def test_children_include_files_beside_source():
    source = sources.MemorySource(
        b"top=1\nweb.port=80\nlocal=x\n",
        entries=[
            "db.cache.properties",
            "db.properties",
            "db.x.y.properties",
            "local.properties",
            "web.extra.properties",
            "notes.txt",
        ],
    )
    root = PreferenceNode.open(source, settings=quiet_settings())
    assert root.children_names() == ["web", "db"]
    assert root.child("db").children_names() == ["cache", "x"]
    assert root.node("db/cache").children_names() == []
    assert root.child("web").children_names() == ["extra"]


def test_children_from_directory_skip_own_file(tmp_path):
    for name in ["prefs.properties", "db.cache.properties", "db.properties", "notes.txt"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "prefs.properties").write_bytes(b"top=1\nweb.port=80\n")
    root = PreferenceNode.open(sources.FileSource(tmp_path / "prefs.properties"), settings=quiet_settings())
    assert root.children_names() == ["web", "db"]
    assert root.child("db").children_names() == ["cache"]


def test_children_when_source_directory_is_missing(tmp_path):
    root = PreferenceNode.open(sources.FileSource(tmp_path / "nope" / "a.properties"), settings=quiet_settings())
    root.node("a/b").put("c", "1")
    assert root.children_names() == ["a"]


def test_rejected_put_leaves_eval_switch_alone():
    root = open_node(b"v=${HOST}\n", HOST="h")
    root.put(preferences.LOCAL_EVAL_DISABLED_KEY, "true")
    with pytest.raises(TypeError):
        root.put(preferences.LOCAL_EVAL_DISABLED_KEY, None)
    assert root.eval_disabled
    assert root.data.get(preferences.LOCAL_EVAL_DISABLED_KEY) == "true"
    assert root.get("v") == "${HOST}"
