import pytest
from movie_catalog.database.db import DBManager
from movie_catalog.database.ops import CacheOperations
from movie_catalog.exceptions import DatabaseError
from movie_catalog.models import DirCacheEntry, VideoFile

def _video(dir_path, name, base, part=0, nfo=None, size=100):
    return VideoFile(
        path=f"{dir_path}/{name}",
        file_name=name,
        dir_path=dir_path,
        size=size,
        base_name=base,
        part_index=part,
        nfo_path=nfo,
    )

def test_entries_round_trip(cache_ops):
    entries = {
        "/lib": DirCacheEntry(
            mtime_ns=1_700_000_000_123_456_789,
            video_files=[
                _video("/lib", "Foo-cd1.mkv", "Foo", 1, "/lib/Foo.nfo", 10),
                _video("/lib", "Foo-cd2.mkv", "Foo", 2, "/lib/Foo.nfo", 20),
            ],
            subdirs=["/lib/Bar"],
        ),
        "/lib/Bar": DirCacheEntry(mtime_ns=5, video_files=[], subdirs=[]),
    }

    cache_ops.replace_entries(entries.items())
    loaded = cache_ops.load_entries()

    assert set(loaded) == {"/lib", "/lib/Bar"}
    lib = loaded["/lib"]
    assert lib.mtime_ns == 1_700_000_000_123_456_789
    assert lib.subdirs == ["/lib/Bar"]
    # Listing order is preserved
    assert [v.file_name for v in lib.video_files] == ["Foo-cd1.mkv", "Foo-cd2.mkv"]
    assert lib.video_files[1].part_index == 2
    assert lib.video_files[1].size == 20
    assert lib.video_files[0].nfo_path == "/lib/Foo.nfo"
    assert loaded["/lib/Bar"].video_files == []

def test_replace_drops_stale_rows(cache_ops, conn):
    cache_ops.replace_entries([("/old", DirCacheEntry(1, [_video("/old", "A.mkv", "A")], []))])
    cache_ops.replace_entries([("/new", DirCacheEntry(2, [], []))])

    assert set(cache_ops.load_entries()) == {"/new"}
    count = conn.execute("SELECT COUNT(*) FROM directory_videos").fetchone()[0]
    assert count == 0

def test_schema_init_is_idempotent(conn):
    from movie_catalog.database.schema import init_schema
    init_schema(conn)
    versions = conn.execute("SELECT version FROM schema_version").fetchall()
    assert versions == [(1,)]

def test_db_manager_persists_to_file(tmp_path):
    db_path = tmp_path / "cache.db"
    with DBManager(db_path) as conn:
        CacheOperations(conn).replace_entries([("/lib", DirCacheEntry(7, [], ["/lib/x"]))])

    with DBManager(db_path) as conn:
        loaded = CacheOperations(conn).load_entries()
    assert loaded["/lib"].subdirs == ["/lib/x"]

def test_db_manager_reports_unusable_path(tmp_path):
    # A directory cannot be opened as a database file
    with pytest.raises(DatabaseError):
        DBManager(tmp_path).connect()

def test_corrupt_subdirs_json_raises(cache_ops, conn):
    conn.execute("INSERT INTO directories (path, mtime_ns, subdirs, listed_at) VALUES ('/x', 1, 'not json', '')")
    with pytest.raises(DatabaseError):
        cache_ops.load_entries()
