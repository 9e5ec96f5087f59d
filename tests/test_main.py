import csv
import os
import pytest
from movie_catalog.main import main, set_field
from movie_catalog.metadata import nfo
from movie_catalog.metadata.extract import MetadataExtractor
from movie_catalog.models import NfoData, VideoMetadata

def test_scan_command_lists_movies(movie_tree, capsys):
    assert main(["scan", str(movie_tree)]) == 0
    out = capsys.readouterr().out
    assert f"Foo (2 parts)  {movie_tree}" in out
    assert "Baz" in out and "[no nfo]" in out
    assert "3 movies, 4 files" in out

def test_scan_command_writes_state_files(movie_tree, tmp_path):
    snapshot = tmp_path / "scan-cache.json"
    cache_db = tmp_path / "cache.db"
    report = tmp_path / "library.csv"

    args = ["--snapshot", str(snapshot), "--cache-db", str(cache_db), "scan", str(movie_tree), "--report", str(report)]
    assert main(args) == 0
    assert snapshot.exists()
    assert cache_db.exists()
    with open(report, newline="", encoding="utf-8") as f:
        assert len(list(csv.reader(f))) == 4

    # Second run warms up from the saved cache
    assert main(args) == 0

def test_dupes_command_deletes_lower_quality(tmp_path, monkeypatch, capsys):
    for d in ("a", "b"):
        (tmp_path / d).mkdir()
    (tmp_path / "a" / "Foo.mkv").write_bytes(b"x" * 2)
    (tmp_path / "b" / "Foo.mkv").write_bytes(b"x" * 8)

    def fake_probe(self, path):
        size = os.path.getsize(path)
        return VideoMetadata(video_codec="h264", width=size * 100, height=size * 10)

    monkeypatch.setattr(MetadataExtractor, "probe_available", lambda self: True)
    monkeypatch.setattr(MetadataExtractor, "get_video_metadata", fake_probe)

    plan = tmp_path / "plan.csv"
    assert main(["dupes", str(tmp_path), "--report", str(plan), "--delete"]) == 0

    out = capsys.readouterr().out
    assert "Foo:" in out
    assert plan.exists()
    assert not (tmp_path / "a" / "Foo.mkv").exists()
    assert (tmp_path / "b" / "Foo.mkv").exists()

def test_nfo_set_and_show(tmp_path, capsys):
    path = tmp_path / "Foo.nfo"
    assert main(["nfo", "set", str(path), "title", "Foo"]) == 0
    assert main(["nfo", "set", str(path), "genres", "Drama, Comedy"]) == 0
    assert nfo.backup_path_for(path).exists()

    assert main(["nfo", "show", str(path)]) == 0
    out = capsys.readouterr().out
    assert "title: Foo" in out
    assert "genres: Drama, Comedy" in out

def test_nfo_set_unknown_field(tmp_path):
    assert main(["nfo", "set", str(tmp_path / "Foo.nfo"), "poster_raw", "x"]) == 2
    assert not (tmp_path / "Foo.nfo").exists()

def test_nfo_commands_refuse_invalid_file(tmp_path):
    path = tmp_path / "Foo.nfo"
    path.write_text("<tvshow/>", encoding="utf-8")
    assert main(["nfo", "show", str(path)]) == 1
    assert main(["nfo", "set", str(path), "title", "Foo"]) == 1
    assert path.read_text(encoding="utf-8") == "<tvshow/>"

def test_set_field():
    data = NfoData()
    set_field(data, "year", "2001")
    set_field(data, "tags", "a,,b ")
    assert data.year == "2001"
    assert data.tags == ["a", "b"]
    with pytest.raises(ValueError):
        set_field(data, "actors", "x")

def test_scan_command_refreshes_sizes_from_cached_listing(tmp_path, set_mtime):
    lib = tmp_path / "lib"
    lib.mkdir()
    video = lib / "Foo.mkv"
    video.write_bytes(b"x" * 10)
    set_mtime(lib, 1_700_000_000_000_000_000)
    cache_db = tmp_path / "cache.db"
    report = tmp_path / "library.csv"
    args = ["--cache-db", str(cache_db), "scan", str(lib), "--report", str(report)]
    assert main(args) == 0

    video.write_bytes(b"x" * 99)
    set_mtime(lib, 1_700_000_000_000_000_000)
    assert main(args) == 0
    with open(report, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[1][3] == "99"
