import logging
import re
import subprocess
import sys
from typing import Callable, Dict, Optional

from .. import config

# "OK           Z:        \\10.0.0.10\movie         Microsoft Windows Network"
NET_USE_LINE = re.compile(r'\s+([A-Z]:)\s+(\\\\\S+)', re.IGNORECASE)
DRIVE_PREFIX = re.compile(r'^[A-Z]:$', re.IGNORECASE)


def _run_net_use() -> str:
    return subprocess.run(
        ['net', 'use'],
        capture_output=True,
        text=True,
        timeout=config.NET_USE_TIMEOUT,
        check=True,
    ).stdout


class DriveMapResolver:
    """
    Maps network drive letters to their UNC address so that a share mounted
    as Z: and the same share mounted as Y: resolve to one directory identity.

    The drive map is built lazily on first use and kept until reset();
    scans call reset() once per session.
    """

    def __init__(self,
                 platform: Optional[str] = None,
                 runner: Optional[Callable[[], str]] = None):
        self.platform = platform or sys.platform
        self.runner = runner or _run_net_use
        self._drive_map: Optional[Dict[str, str]] = None

    def reset(self):
        self._drive_map = None

    def drive_map(self) -> Dict[str, str]:
        if self._drive_map is not None:
            return self._drive_map

        self._drive_map = {}
        if self.platform != 'win32':
            return self._drive_map

        try:
            output = self.runner()
        except (OSError, subprocess.SubprocessError) as e:
            logging.debug(f"'net use' unavailable, network drives stay unresolved: {e}")
            return self._drive_map

        for match in NET_USE_LINE.finditer(output):
            self._drive_map[match.group(1).upper()] = match.group(2)

        logging.debug(f"Resolved {len(self._drive_map)} mapped network drives.")
        return self._drive_map

    def resolve(self, path: str) -> str:
        """
        Z:\\movies\\foo.mkv -> \\\\10.0.0.10\\movie\\movies\\foo.mkv
        Returns the input unchanged when no mapping applies.
        """
        if self.platform != 'win32':
            return path

        drive = path[:2].upper()
        if not DRIVE_PREFIX.match(drive):
            return path

        unc = self.drive_map().get(drive)
        if not unc:
            return path
        return unc + path[2:]
