"""
Database schema for the persisted directory cache.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1


def init_schema(conn: sqlite3.Connection):
    """
    Applies the cache schema to the database.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. One row per listed directory
        # An entry is only reused while the directory's mtime still matches mtime_ns
        conn.execute("""
        CREATE TABLE IF NOT EXISTS directories (
            path            TEXT PRIMARY KEY,
            mtime_ns        INTEGER NOT NULL,
            subdirs         TEXT NOT NULL,        -- JSON array of full paths
            listed_at       TEXT NOT NULL
        );
        """)

        # 3. Video files found directly inside a directory (non-recursive)
        conn.execute("""
        CREATE TABLE IF NOT EXISTS directory_videos (
            dir_path        TEXT NOT NULL,
            position        INTEGER NOT NULL,     -- listing order
            path            TEXT NOT NULL,
            file_name       TEXT NOT NULL,
            size_bytes      INTEGER NOT NULL DEFAULT 0,
            base_name       TEXT NOT NULL,
            part_index      INTEGER NOT NULL DEFAULT 0,
            nfo_path        TEXT,
            PRIMARY KEY (dir_path, position),
            FOREIGN KEY(dir_path) REFERENCES directories(path) ON DELETE CASCADE
        );
        """)

        # 4. Indices for Performance
        conn.execute("CREATE INDEX IF NOT EXISTS idx_directory_videos_dir ON directory_videos(dir_path);")

    logging.debug("Cache schema initialized.")
