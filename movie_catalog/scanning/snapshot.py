"""
Scan-result snapshot: the last complete flat file list, shown at startup
before a live scan finishes.
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from ..models import VideoFile


def save_snapshot(path: Path, files: List[VideoFile]) -> bool:
    """Writes the snapshot; failures are logged, never raised."""
    tmp_path = Path(f"{path}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open('w', encoding='utf-8') as f:
            json.dump([v.to_dict() for v in files], f, ensure_ascii=False)
        os.replace(tmp_path, path)
        return True
    except OSError as e:
        logging.error(f"Error saving scan snapshot {path}: {e}")
        return False


def load_snapshot(path: Path) -> Optional[List[VideoFile]]:
    """
    Returns the stored file list, or None when the snapshot is missing,
    corrupted, or not a list of file records.
    """
    if not path.exists():
        return None

    try:
        with path.open('r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logging.warning(f"Ignoring unreadable scan snapshot {path}: {e}")
        return None

    if not isinstance(raw, list):
        logging.warning(f"Ignoring scan snapshot {path}: expected a list")
        return None

    try:
        return [VideoFile.from_dict(item) for item in raw]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logging.warning(f"Ignoring malformed scan snapshot {path}: {e}")
        return None
