import pytest

from stringprops import exceptions
from stringprops import sources


def test_file_source_read_write(tmp_path):
    s = sources.FileSource(tmp_path / "a.properties")
    assert not s.exists()
    with pytest.raises(exceptions.DataSourceMissing):
        s.open_for_read()
    with sources.writing(s) as f:
        f.write(b"a=1\n")
    assert s.exists()
    with sources.reading(s) as f:
        assert f.read() == b"a=1\n"


def test_file_source_write_failure(tmp_path):
    s = sources.FileSource(tmp_path / "missing-dir" / "a.properties")
    with pytest.raises(exceptions.FetchFailure):
        s.open_for_write()


def test_file_source_list_entries(tmp_path):
    for name in ["ROOT.properties", "a.properties", "a.b.properties", "notes.txt"]:
        (tmp_path / name).write_text("")
    (tmp_path / "dir.properties").mkdir()
    s = sources.FileSource(tmp_path / "ROOT.properties")
    assert s.list_entries(lambda name: name.endswith(".properties")) == [
        "ROOT.properties", "a.b.properties", "a.properties",
    ]
    assert s.list_entries(lambda name: name.startswith("a.")) == ["a.b.properties", "a.properties"]


def test_file_source_list_entries_missing_dir(tmp_path):
    s = sources.FileSource(tmp_path / "nope" / "a.properties")
    with pytest.raises(exceptions.DataSourceMissing):
        s.list_entries(lambda name: True)


def test_memory_source():
    s = sources.MemorySource(entries=["x.properties", "y.txt"])
    assert not s.exists()
    with sources.writing(s) as f:
        f.write(b"k=v\n")
        assert s.data is None
    assert s.exists()
    assert s.open_for_read().read() == b"k=v\n"
    assert s.list_entries(lambda name: name.endswith(".properties")) == ["x.properties"]


def test_source_for():
    test_cases = [
        ("/etc/app.properties", "/etc/app.properties"),
        ("./app.properties", "./app.properties"),
        ("app.properties", "app.properties"),
        ("file:/etc/app.properties", "/etc/app.properties"),
        ("file:///etc/app.properties", "/etc/app.properties"),
        ("C:\\app.properties", "C:\\app.properties"),
    ]
    for location, path in test_cases:
        s = sources.source_for(location)
        assert isinstance(s, sources.FileSource)
        assert s.path == path


@pytest.mark.parametrize("location", ["http://example.com/a.properties", "s3://bucket/key"])
def test_source_for_rejects_remote_locations(location):
    with pytest.raises(ValueError):
        sources.source_for(location)
