import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from . import config
from .database.db import DBManager
from .database.ops import CacheOperations
from .exceptions import MovieCatalogError, ScanError
from .metadata.extract import MetadataExtractor
from .metadata.linking import PosterFinder
from .metadata import nfo
from .models import VideoFile, MovieGroup, NfoData, ScanStats, OperationResult, ProbeOutcome, DeletionReport
from .organization.duplicates import DuplicateCluster, KeepStrategy, find_duplicates, select_for_deletion
from .organization.grouping import group_videos
from .organization.mover import FileRemover
from .scanning.dircache import DirectoryCache
from .scanning.filesystem import DirectoryScanner, ScanGeneration, ScanToken, fetch_file_sizes
from .scanning.paths import DriveMapResolver
from .scanning.snapshot import load_snapshot, save_snapshot


@dataclass
class ScanResult:
    files: List[VideoFile]
    stats: ScanStats
    generation: int
    superseded: bool = False

    @property
    def groups(self) -> List[MovieGroup]:
        return group_videos(self.files)


@dataclass
class NfoLoadResult:
    nfo_path: str
    data: Optional[NfoData] = None
    error: Optional[str] = None


@dataclass
class CatalogState:
    """Process-lifetime caches, reset explicitly at the start of a scan session."""
    dir_cache: DirectoryCache = field(default_factory=DirectoryCache)
    resolver: DriveMapResolver = field(default_factory=DriveMapResolver)
    posters: PosterFinder = field(default_factory=PosterFinder)
    generation: ScanGeneration = field(default_factory=ScanGeneration)


class MovieCatalogApp:
    def __init__(self,
                 state: Optional[CatalogState] = None,
                 extractor: Optional[MetadataExtractor] = None,
                 max_workers: int = config.DIR_PARALLEL,
                 show_progress: bool = False):
        self.state = state or CatalogState()
        self.show_progress = show_progress
        self.extractor = extractor or MetadataExtractor()
        self.scanner = DirectoryScanner(
            dir_cache=self.state.dir_cache,
            resolver=self.state.resolver,
            max_workers=max_workers,
        )

    # --- Scanning ---

    def start_scan(self) -> ScanToken:
        """Supersedes any scan in progress and returns the new session's token."""
        token = self.state.generation.advance()
        self.state.posters.clear()
        return token

    def scan(self,
             roots: Iterable[str],
             on_found: Optional[Callable[[VideoFile], None]] = None,
             token: Optional[ScanToken] = None) -> ScanResult:
        """
        Runs one scan session over `roots`.

        Files are de-duplicated by path and streamed to on_found as they
        are discovered. If another scan starts meanwhile, delivery stops and
        the result is flagged as superseded.
        """
        roots = [str(r) for r in roots]
        if not roots:
            raise ScanError("No directories configured for scanning.")

        token = token or self.start_scan()
        logging.info(f"Scanning {len(roots)} root(s) (generation {token.value})...")

        stats = ScanStats()
        collected: List[VideoFile] = []
        seen_paths = set()

        for video in self.scanner.iter_scan(roots, stats, token):
            if token.superseded:
                break
            if video.path in seen_paths:
                continue
            seen_paths.add(video.path)
            collected.append(video)
            if on_found is not None:
                on_found(video)

        return ScanResult(
            files=collected,
            stats=stats,
            generation=token.value,
            superseded=token.superseded,
        )

    def probe_metadata(self,
                       files: List[VideoFile],
                       token: Optional[ScanToken] = None) -> List[ProbeOutcome]:
        """
        Attaches technical metadata to `files` in place, batch by batch.
        Stops between batches once `token` is superseded.
        """
        outcomes: List[ProbeOutcome] = []
        by_path = {f.path: f for f in files}
        paths = list(by_path)

        with tqdm(total=len(paths), desc="Probing", disable=not self.show_progress) as pbar:
            for i in range(0, len(paths), config.PROBE_BATCH_SIZE):
                if token is not None and token.superseded:
                    logging.debug("Metadata probing superseded by a newer scan.")
                    break
                batch = paths[i:i + config.PROBE_BATCH_SIZE]
                for outcome in self.extractor.probe_batch(batch):
                    if outcome.metadata is not None:
                        by_path[outcome.path].metadata = outcome.metadata
                    outcomes.append(outcome)
                pbar.update(len(batch))
        return outcomes

    def refresh_sizes(self, files: List[VideoFile]) -> int:
        """
        Re-stats `files` in parallel and updates their sizes in place.
        A directory cache hit keeps the size seen at listing time, so files
        rewritten in place report a stale size until refreshed.
        Returns the number of sizes that changed.
        """
        sizes = fetch_file_sizes([f.path for f in files])
        changed = 0
        for f in files:
            size = sizes.get(f.path)
            if size is not None and size != f.size:
                f.size = size
                changed += 1
        if changed:
            logging.info(f"Refreshed {changed} file sizes.")
        return changed

    # --- Sidecar Metadata ---

    def read_metadata(self, nfo_path: str) -> NfoLoadResult:
        try:
            return NfoLoadResult(nfo_path=nfo_path, data=nfo.read_nfo(nfo_path))
        except (OSError, MovieCatalogError) as e:
            logging.warning(f"Error reading NFO {nfo_path}: {e}")
            return NfoLoadResult(nfo_path=nfo_path, error=str(e))

    def load_nfo_batch(self,
                       groups: List[MovieGroup],
                       token: Optional[ScanToken] = None) -> Dict[Tuple[str, str], NfoLoadResult]:
        """Reads the sidecar of every group that has one; failures are per group."""
        results: Dict[Tuple[str, str], NfoLoadResult] = {}
        with_nfo = [g for g in groups if g.nfo_path]

        for i in range(0, len(with_nfo), config.NFO_BATCH_SIZE):
            if token is not None and token.superseded:
                break
            for group in with_nfo[i:i + config.NFO_BATCH_SIZE]:
                results[group.key] = self.read_metadata(group.nfo_path)
        return results

    def save_metadata(self, nfo_path: str, data: NfoData) -> OperationResult:
        try:
            nfo.save_nfo(nfo_path, data)
            return OperationResult(path=nfo_path, success=True)
        except MovieCatalogError as e:
            logging.error(f"Error saving NFO {nfo_path}: {e}")
            return OperationResult(path=nfo_path, success=False, error=str(e))

    def find_poster(self, group: MovieGroup) -> Optional[str]:
        return self.state.posters.find(group.dir_path, group.base_name)

    # --- Duplicates ---

    def find_duplicates(self, files: List[VideoFile]) -> List[DuplicateCluster]:
        clusters = find_duplicates(files)
        logging.info(f"Found {len(clusters)} duplicate clusters.")
        return clusters

    def delete_duplicates(self,
                          clusters: List[DuplicateCluster],
                          strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION,
                          dry_run: bool = False) -> DeletionReport:
        selected = select_for_deletion(clusters, strategy)
        remover = FileRemover(show_progress=self.show_progress)
        return remover.delete_files([f.path for f in selected], dry_run=dry_run)

    # --- Persistence ---

    def load_dir_cache(self, db_path: Path):
        with DBManager(db_path) as conn:
            entries = CacheOperations(conn).load_entries()
        for path, entry in entries.items():
            self.state.dir_cache.store(path, entry)
        logging.info(f"Directory cache warmed with {len(entries)} entries.")

    def save_dir_cache(self, db_path: Path):
        with DBManager(db_path) as conn:
            CacheOperations(conn).replace_entries(self.state.dir_cache.items())

    def load_snapshot(self, path: Path) -> Optional[List[VideoFile]]:
        return load_snapshot(path)

    def save_snapshot(self, path: Path, files: List[VideoFile]) -> bool:
        return save_snapshot(path, files)
