"""
Custom exception hierarchy for the movie catalog.

Scanning never raises for a single unreadable directory; these types are
used where a failure has to reach the caller (sidecar I/O, probing,
cache persistence).
"""


class MovieCatalogError(Exception):
    """Base exception for all movie catalog errors."""
    pass


class ScanError(MovieCatalogError):
    """Raised when a scan cannot be started at all."""
    pass


class NfoParseError(MovieCatalogError):
    """Raised when a sidecar file is not a well-formed <movie> document."""
    pass


class NfoWriteError(MovieCatalogError):
    """Raised when a sidecar file could not be written."""
    pass


class MetadataExtractionError(MovieCatalogError):
    """Raised when technical metadata cannot be probed from a video file."""
    pass


class DatabaseError(MovieCatalogError):
    """Raised when the persisted directory cache cannot be read or written."""
    pass
