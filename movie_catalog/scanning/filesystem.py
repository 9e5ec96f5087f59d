import os
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, Future, wait, as_completed, FIRST_COMPLETED
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .. import config
from ..models import VideoFile, DirCacheEntry, ScanStats
from ..metadata.linking import find_nfo_in_listing
from .dircache import DirectoryCache
from .paths import DriveMapResolver


def parse_part_info(file_name: str) -> Tuple[str, int]:
    """
    "Movie-cd2.mkv" -> ("Movie", 2), "Movie.mkv" -> ("Movie", 0)
    """
    stem = os.path.splitext(file_name)[0]
    match = config.PART_PATTERN.search(stem)
    if match:
        return stem[:match.start()], int(match.group(2))
    return stem, 0


def is_video_file(file_name: str) -> bool:
    return os.path.splitext(file_name)[1].lower() in config.VIDEO_EXTS


class ScanGeneration:
    """
    Monotonic scan counter. Starting a scan advances it; results belonging
    to an older value are dropped instead of aborting in-flight I/O.
    """

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    @property
    def current(self) -> int:
        return self._value

    def advance(self) -> 'ScanToken':
        with self._lock:
            self._value += 1
            return ScanToken(self, self._value)


class ScanToken:
    def __init__(self, generation: ScanGeneration, value: int):
        self.generation = generation
        self.value = value

    @property
    def superseded(self) -> bool:
        return self.generation.current != self.value


def _fresh_copies(entry: DirCacheEntry) -> List[VideoFile]:
    # Callers attach probe results to what they receive; the cache keeps listing data only
    return [replace(v, metadata=None) for v in entry.video_files]


@dataclass
class _DirVisit:
    directory: str
    video_files: List[VideoFile]
    subdirs: List[str]
    cache_hit: bool


class DirectoryScanner:
    def __init__(self,
                 dir_cache: Optional[DirectoryCache] = None,
                 resolver: Optional[DriveMapResolver] = None,
                 max_workers: int = config.DIR_PARALLEL):
        self.dir_cache = dir_cache if dir_cache is not None else DirectoryCache()
        self.resolver = resolver or DriveMapResolver()
        self.max_workers = max(1, max_workers)

    def scan(self,
             roots: Iterable[str],
             on_found: Callable[[VideoFile], None],
             token: Optional[ScanToken] = None) -> ScanStats:
        """
        Walks every root and calls on_found once per video file.
        Returns the aggregate statistics of the walk.
        """
        stats = ScanStats()
        for video in self.iter_scan(roots, stats, token):
            on_found(video)
        return stats

    def iter_scan(self,
                  roots: Iterable[str],
                  stats: Optional[ScanStats] = None,
                  token: Optional[ScanToken] = None) -> Iterator[VideoFile]:
        """
        Generator that yields VideoFiles as directories are visited.

        Directories form a work queue served by a bounded thread pool
        (max_workers listings in flight). All files of one directory are
        yielded together. A failing directory is logged and skipped without
        affecting its siblings. Iteration stops early once `token` is
        superseded by a newer scan.
        """
        stats = stats if stats is not None else ScanStats()
        start = time.perf_counter()

        # Drive letters may have been remapped since the last scan
        self.resolver.reset()
        resolved = [self.resolver.resolve(str(r)) for r in roots]

        visited = set()
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        pending: Dict[Future, str] = {}

        def submit(directory: str):
            if directory in visited:
                return
            visited.add(directory)
            pending[executor.submit(self._visit, directory)] = directory

        try:
            for root in resolved:
                submit(root)

            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    directory = pending.pop(future)
                    try:
                        visit = future.result()
                    except OSError as e:
                        logging.warning(f"Skipping unreadable directory {directory}: {e}")
                        continue
                    except Exception as e:
                        logging.error(f"Failed to scan directory {directory}: {e}")
                        continue

                    if token is not None and token.superseded:
                        logging.debug(f"Scan generation {token.value} superseded; stopping.")
                        return

                    if visit.cache_hit:
                        stats.cache_hits += 1
                    else:
                        stats.readdir_count += 1
                    stats.video_count += len(visit.video_files)
                    stats.dir_count += len(visit.subdirs)

                    yield from visit.video_files

                    for sub in visit.subdirs:
                        submit(sub)

            stats.elapsed = time.perf_counter() - start
            logging.info(
                f"Scan completed in {stats.elapsed * 1000:.0f}ms: "
                f"{stats.video_count} videos, {stats.readdir_count} listed, "
                f"{stats.cache_hits} cached, {stats.dir_count} subdirs"
            )
        finally:
            stats.elapsed = time.perf_counter() - start
            for future in pending:
                future.cancel()
            executor.shutdown(wait=True)

    def _visit(self, directory: str) -> _DirVisit:
        # Single stat: the cheap probe that decides between cache hit and full listing
        mtime_ns = os.stat(directory).st_mtime_ns

        cached = self.dir_cache.lookup(directory, mtime_ns)
        if cached is not None:
            logging.debug(f"Cache hit: {directory}")
            return _DirVisit(directory, _fresh_copies(cached), list(cached.subdirs), True)

        logging.debug(f"Cache miss: {directory}")
        entry = self._list_directory(directory, mtime_ns)
        self.dir_cache.store(directory, entry)
        return _DirVisit(directory, _fresh_copies(entry), list(entry.subdirs), False)

    def _list_directory(self, directory: str, mtime_ns: int) -> DirCacheEntry:
        with os.scandir(directory) as it:
            entries = list(it)

        # Sort for stable emission order
        entries.sort(key=lambda e: e.name.lower())

        dirs = []
        files = []
        for e in entries:
            if self._is_dir(e):
                dirs.append(e)
            else:
                files.append(e)

        # Lower-cased name -> actual name, for case-insensitive sidecar lookup
        names_in_dir = {e.name.lower(): e.name for e in files}

        videos = []
        for e in files:
            if not is_video_file(e.name):
                continue
            base_name, part_index = parse_part_info(e.name)
            videos.append(VideoFile(
                path=os.path.join(directory, e.name),
                file_name=e.name,
                dir_path=directory,
                size=self._entry_size(e),
                base_name=base_name,
                part_index=part_index,
                nfo_path=find_nfo_in_listing(directory, base_name, e.name, names_in_dir),
            ))

        subdirs = [os.path.join(directory, e.name) for e in dirs]
        return DirCacheEntry(mtime_ns=mtime_ns, video_files=videos, subdirs=subdirs)

    def _is_dir(self, entry: os.DirEntry) -> bool:
        try:
            return entry.is_dir(follow_symlinks=False)
        except OSError:
            return False

    def _entry_size(self, entry: os.DirEntry) -> int:
        try:
            return entry.stat().st_size
        except OSError as e:
            logging.debug(f"Could not stat {entry.path}: {e}")
            return 0


def fetch_file_sizes(paths: List[str], max_workers: int = config.FILE_PARALLEL) -> Dict[str, int]:
    """
    Stats many files concurrently. Paths that fail are left out of the result.
    """
    sizes: Dict[str, int] = {}
    if not paths:
        return sizes

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_path = {executor.submit(os.stat, p): p for p in paths}
        for future in as_completed(future_to_path):
            path = future_to_path[future]
            try:
                sizes[path] = future.result().st_size
            except OSError as e:
                logging.debug(f"Could not stat {path}: {e}")
    return sizes
