from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from ..models import VideoFile, MovieGroup


def group_videos(files: Iterable[VideoFile]) -> List[MovieGroup]:
    """
    Consolidates multi-part files ("Movie-cd1.mkv", "Movie-cd2.mkv") into one
    MovieGroup per (directory, base name). Both key parts are case-sensitive.

    Parts are ordered by part index; index 0 (no suffix) counts as part 1.
    Groups are returned sorted by display name.
    """
    buckets: Dict[Tuple[str, str], List[VideoFile]] = defaultdict(list)
    for f in files:
        buckets[(f.dir_path, f.base_name)].append(f)

    groups = []
    for (dir_path, base_name), parts in buckets.items():
        # Stable sort: equal indices keep discovery order
        parts.sort(key=lambda p: p.part_index or 0)
        groups.append(MovieGroup(dir_path=dir_path, base_name=base_name, parts=parts))

    groups.sort(key=lambda g: (g.base_name.lower(), g.dir_path))
    return groups
