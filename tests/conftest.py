import os
import pytest
import sqlite3
from movie_catalog.database.schema import init_schema
from movie_catalog.database.ops import CacheOperations

@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    c.execute("PRAGMA foreign_keys=ON;")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()

@pytest.fixture
def cache_ops(conn):
    """Returns a CacheOperations instance attached to the in-memory DB."""
    return CacheOperations(conn)

@pytest.fixture
def movie_tree(tmp_path):
    """
    A small library:
        lib/Foo-cd1.mkv, lib/Foo-cd2.mkv, lib/Foo.nfo
        lib/Bar/Bar.mp4, lib/Bar/movie.nfo, lib/Bar/notes.txt
        lib/Bar/Extras/Baz.avi
    """
    lib = tmp_path / "lib"
    (lib / "Bar" / "Extras").mkdir(parents=True)
    (lib / "Foo-cd1.mkv").write_bytes(b"a" * 10)
    (lib / "Foo-cd2.mkv").write_bytes(b"b" * 20)
    (lib / "Foo.nfo").write_text("<movie><title>Foo</title></movie>", encoding="utf-8")
    (lib / "Bar" / "Bar.mp4").write_bytes(b"c" * 30)
    (lib / "Bar" / "movie.nfo").write_text("<movie><title>Bar</title></movie>", encoding="utf-8")
    (lib / "Bar" / "notes.txt").write_text("not a video", encoding="utf-8")
    (lib / "Bar" / "Extras" / "Baz.avi").write_bytes(b"d" * 5)
    return lib

@pytest.fixture
def set_mtime():
    """Pins an mtime so cache validity does not depend on timestamp granularity."""
    def _set(path, mtime_ns):
        os.utime(path, ns=(mtime_ns, mtime_ns))
    return _set
