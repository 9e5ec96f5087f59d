import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple, List

from .. import config


def find_nfo_in_listing(directory: str,
                        base_name: str,
                        file_name: str,
                        names_in_dir: Dict[str, str]) -> Optional[str]:
    """
    Finds the sidecar for a video using an already-fetched listing (zero extra I/O).

    names_in_dir maps lower-cased file name -> actual file name.
    Lookup order: <base_name>.nfo -> <video stem>.nfo -> movie.nfo
    """
    stem = os.path.splitext(file_name)[0]

    # 1. Base name first: "Movie.nfo" covers "Movie-cd1.mkv" and "Movie-cd2.mkv"
    candidates = [base_name + config.NFO_EXT]

    # 2. Exact video name (only if different from the base)
    if stem != base_name:
        candidates.append(stem + config.NFO_EXT)

    # 3. Generic per-folder sidecar
    candidates.append(config.GENERIC_NFO_NAME)

    for candidate in candidates:
        actual = names_in_dir.get(candidate.lower())
        if actual:
            return os.path.join(directory, actual)
    return None


def poster_candidates(base_name: str) -> List[str]:
    """Ordered poster file names for a movie; first existing one wins."""
    exts = config.POSTER_IMAGE_EXTS
    return (
        [f"{base_name}-poster{ext}" for ext in exts] +
        [f"{base_name}{ext}" for ext in exts] +
        [f"poster{ext}" for ext in exts] +
        [f"folder{ext}" for ext in exts]
    )


class PosterFinder:
    """
    Locates poster images next to a movie and remembers the answer
    (including "no poster") until clear() is called on rescan.
    """

    def __init__(self):
        self._cache: Dict[Tuple[str, str], Optional[str]] = {}
        self._lock = threading.Lock()

    def find(self, dir_path: str, base_name: str) -> Optional[str]:
        key = (dir_path, base_name)
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        found = None
        for name in poster_candidates(base_name):
            candidate = Path(dir_path) / name
            try:
                if candidate.is_file():
                    found = str(candidate)
                    break
            except OSError as e:
                logging.debug(f"Poster check failed for {candidate}: {e}")

        with self._lock:
            self._cache[key] = found
        return found

    def clear(self):
        with self._lock:
            self._cache.clear()
