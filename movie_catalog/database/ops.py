import json
import sqlite3
import logging
from datetime import datetime, UTC
from typing import Dict, Iterable, Tuple

from ..exceptions import DatabaseError
from ..models import DirCacheEntry, VideoFile


class CacheOperations:
    """Reads and writes DirCacheEntry rows."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def load_entries(self) -> Dict[str, DirCacheEntry]:
        try:
            cur = self.conn.cursor()
            cur.execute("SELECT path, mtime_ns, subdirs FROM directories")
            entries: Dict[str, DirCacheEntry] = {}
            for path, mtime_ns, subdirs_json in cur.fetchall():
                entries[path] = DirCacheEntry(
                    mtime_ns=int(mtime_ns),
                    subdirs=list(json.loads(subdirs_json)),
                )

            cur.execute("""
                SELECT dir_path, path, file_name, size_bytes, base_name, part_index, nfo_path
                FROM directory_videos
                ORDER BY dir_path, position
            """)
            for dir_path, path, file_name, size, base_name, part_index, nfo_path in cur.fetchall():
                entry = entries.get(dir_path)
                if entry is None:
                    continue
                entry.video_files.append(VideoFile(
                    path=path,
                    file_name=file_name,
                    dir_path=dir_path,
                    size=size or 0,
                    base_name=base_name,
                    part_index=part_index or 0,
                    nfo_path=nfo_path,
                ))
        except (sqlite3.Error, ValueError) as e:
            raise DatabaseError(f"Failed to load directory cache: {e}") from e

        logging.debug(f"Loaded {len(entries)} cached directories.")
        return entries

    def replace_entries(self, entries: Iterable[Tuple[str, DirCacheEntry]]):
        """Replaces the stored cache with `entries` in one transaction."""
        now_iso = datetime.now(UTC).isoformat()
        count = 0
        try:
            with self.conn:
                self.conn.execute("DELETE FROM directory_videos")
                self.conn.execute("DELETE FROM directories")
                for path, entry in entries:
                    self.conn.execute(
                        "INSERT INTO directories (path, mtime_ns, subdirs, listed_at) VALUES (?, ?, ?, ?)",
                        (path, entry.mtime_ns, json.dumps(entry.subdirs), now_iso),
                    )
                    self.conn.executemany(
                        """
                        INSERT INTO directory_videos
                        (dir_path, position, path, file_name, size_bytes, base_name, part_index, nfo_path)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (path, pos, v.path, v.file_name, v.size, v.base_name, v.part_index, v.nfo_path)
                            for pos, v in enumerate(entry.video_files)
                        ],
                    )
                    count += 1
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to save directory cache: {e}") from e

        logging.debug(f"Saved {count} cached directories.")
