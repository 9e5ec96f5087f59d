"""
Filename/quality based duplicate detection.

Files are interchangeable copies when they share a base name (case-insensitive)
and the same part index. A file without a part suffix counts as a copy of
the lowest part present ("Movie.mkv" vs "Movie-cd1.mkv" + "Movie-cd2.mkv").
No content hashing is involved.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List

from .. import config
from ..models import VideoFile


class KeepStrategy(str, Enum):
    """Which copy of a cluster to keep."""
    HIGHER_RESOLUTION = 'resolution'
    NEWER_CODEC = 'codec'
    LARGER_FILE = 'size'


def codec_rank(f: VideoFile) -> int:
    if not f.metadata or not f.metadata.video_codec:
        return config.MISSING_CODEC_RANK
    return config.CODEC_RANK.get(f.metadata.video_codec.lower(), config.UNKNOWN_CODEC_RANK)


# Each comparator answers: should `curr` replace `best` as the copy to keep?

def _prefers_resolution(curr: VideoFile, best: VideoFile) -> bool:
    if curr.resolution != best.resolution:
        return curr.resolution > best.resolution
    return curr.size > best.size


def _prefers_codec(curr: VideoFile, best: VideoFile) -> bool:
    curr_rank, best_rank = codec_rank(curr), codec_rank(best)
    if curr_rank != best_rank:
        return curr_rank > best_rank
    return curr.resolution > best.resolution


def _prefers_size(curr: VideoFile, best: VideoFile) -> bool:
    return curr.size > best.size


COMPARATORS: Dict[KeepStrategy, Callable[[VideoFile, VideoFile], bool]] = {
    KeepStrategy.HIGHER_RESOLUTION: _prefers_resolution,
    KeepStrategy.NEWER_CODEC: _prefers_codec,
    KeepStrategy.LARGER_FILE: _prefers_size,
}


@dataclass
class DuplicateCluster:
    """
    Files considered copies of the same content.
    `files` are ordered by resolution, then size (both descending).
    """
    label: str
    files: List[VideoFile] = field(default_factory=list)

    def best_index(self, strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION) -> int:
        """Pairwise left-to-right scan; on a tie the earlier file stays best."""
        prefers = COMPARATORS[KeepStrategy(strategy)]
        best = 0
        for i in range(1, len(self.files)):
            if prefers(self.files[i], self.files[best]):
                best = i
        return best

    def best(self, strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION) -> VideoFile:
        return self.files[self.best_index(strategy)]

    def deletion_candidates(self, strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION) -> List[VideoFile]:
        keep = self.best_index(strategy)
        return [f for i, f in enumerate(self.files) if i != keep]


def _quality_sorted(files: List[VideoFile]) -> List[VideoFile]:
    # Path as the final key keeps the order deterministic across scans
    return sorted(files, key=lambda f: (-f.resolution, -f.size, f.path))


def find_duplicates(files: Iterable[VideoFile]) -> List[DuplicateCluster]:
    """
    Partitions files into duplicate clusters, respecting part semantics:
      - cd1 and cd2 of the same release are never duplicates of each other
      - two cd1 files (different directories) are duplicates
      - a suffix-less file next to cdN parts joins the lowest part's cluster
    Only clusters with more than one member are returned, sorted by label.
    """
    # Step 1: group by base name
    by_base: Dict[str, List[VideoFile]] = defaultdict(list)
    for f in files:
        by_base[f.base_name.lower()].append(f)

    clusters: List[DuplicateCluster] = []

    for base_files in by_base.values():
        display = base_files[0].base_name

        # Step 2: sub-group by part index
        by_part: Dict[int, List[VideoFile]] = defaultdict(list)
        for f in base_files:
            by_part[f.part_index or 0].append(f)

        part_indices = sorted(k for k in by_part if k > 0)
        single_files = by_part.get(0, [])

        if part_indices and single_files:
            # Full copies are merged into the lowest part present
            lowest = part_indices[0]
            merged = by_part[lowest] + single_files
            _add_cluster(clusters, display, merged)
            for idx in part_indices[1:]:
                _add_cluster(clusters, f"{display}-cd{idx}", by_part[idx])
        else:
            for idx, part_files in by_part.items():
                label = f"{display}-cd{idx}" if idx > 0 else display
                _add_cluster(clusters, label, part_files)

    clusters.sort(key=lambda c: (c.label.lower(), c.label))
    return clusters


def _add_cluster(clusters: List[DuplicateCluster], label: str, members: List[VideoFile]):
    if len(members) > 1:
        clusters.append(DuplicateCluster(label=label, files=_quality_sorted(members)))


def select_for_deletion(clusters: Iterable[DuplicateCluster],
                        strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION) -> List[VideoFile]:
    """Every non-best member of every cluster. Advisory only; nothing is deleted here."""
    selected: List[VideoFile] = []
    for cluster in clusters:
        selected.extend(cluster.deletion_candidates(strategy))
    return selected

