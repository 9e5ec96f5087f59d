from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any, Tuple


@dataclass
class VideoMetadata:
    """
    Technical metadata returned by the external probe.
    Codec names follow ffprobe conventions (h264, hevc, aac, ...).
    """
    video_codec: str = 'unknown'
    width: int = 0
    height: int = 0
    duration: float = 0.0       # seconds
    bitrate: int = 0            # bits/sec
    frame_rate: str = ''        # e.g. "23.976"
    audio_codec: str = 'unknown'
    audio_channels: int = 0


@dataclass
class VideoFile:
    """
    Represents a video file found during a scan.
    Recomputed every scan; only persisted inside a cache entry or a snapshot.
    """
    path: str
    file_name: str
    dir_path: str
    size: int
    base_name: str          # file name without extension and without -cdN suffix
    part_index: int = 0     # 1, 2, 3... for multi-part files, 0 for single files
    nfo_path: Optional[str] = None

    # Populated after the scan by the technical probe
    metadata: Optional[VideoMetadata] = None

    @property
    def resolution(self) -> int:
        if not self.metadata:
            return 0
        return self.metadata.width * self.metadata.height

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VideoFile':
        meta = data.get('metadata')
        return cls(
            path=str(data['path']),
            file_name=str(data['file_name']),
            dir_path=str(data['dir_path']),
            size=int(data.get('size') or 0),
            base_name=str(data['base_name']),
            part_index=int(data.get('part_index') or 0),
            nfo_path=data.get('nfo_path') or None,
            metadata=VideoMetadata(**meta) if isinstance(meta, dict) else None,
        )


@dataclass
class DirCacheEntry:
    """
    Cached listing of a single directory (non-recursive).
    Reusable only while the directory's mtime still equals mtime_ns.
    """
    mtime_ns: int
    video_files: List[VideoFile] = field(default_factory=list)
    subdirs: List[str] = field(default_factory=list)


@dataclass
class ScanStats:
    """Diagnostic counters for one scan invocation."""
    elapsed: float = 0.0        # seconds
    readdir_count: int = 0      # directories that needed a full listing
    cache_hits: int = 0
    video_count: int = 0
    dir_count: int = 0          # subdirectories traversed


@dataclass
class MovieGroup:
    """
    All parts of one movie that live in the same directory under the same base name.
    parts are kept sorted by part index (0 = single file, ordered as part 1).
    """
    dir_path: str
    base_name: str
    parts: List[VideoFile]

    @property
    def key(self) -> Tuple[str, str]:
        return (self.dir_path, self.base_name)

    @property
    def primary(self) -> VideoFile:
        return self.parts[0]

    @property
    def primary_path(self) -> str:
        return self.parts[0].path

    @property
    def part_count(self) -> int:
        return len(self.parts)

    @property
    def total_size(self) -> int:
        return sum(p.size for p in self.parts)

    @property
    def total_duration(self) -> float:
        return sum(p.metadata.duration for p in self.parts if p.metadata)

    @property
    def nfo_path(self) -> Optional[str]:
        for part in self.parts:
            if part.nfo_path:
                return part.nfo_path
        return None

    @property
    def metadata(self) -> Optional[VideoMetadata]:
        return self.parts[0].metadata


# --- Sidecar (NFO) Records ---

@dataclass
class NfoActor:
    name: str
    role: str = ''
    order: Optional[int] = None
    thumb: str = ''
    extras: List[str] = field(default_factory=list)


@dataclass
class NfoRating:
    name: str
    value: float = 0.0
    votes: int = 0
    max: int = 10
    default: bool = False


@dataclass
class NfoData:
    """
    Structured view of a <movie> sidecar.

    Scalars default to '' rather than None. Every top-level tag the codec
    does not model is kept in `extras` (tag -> raw XML of each occurrence)
    and written back unchanged.
    """
    title: str = ''
    originaltitle: str = ''
    sorttitle: str = ''
    year: str = ''
    premiered: str = ''
    plot: str = ''
    outline: str = ''
    tagline: str = ''
    runtime: str = ''
    mpaa: str = ''
    userrating: str = ''
    genres: List[str] = field(default_factory=list)
    directors: List[str] = field(default_factory=list)
    credits: List[str] = field(default_factory=list)
    studios: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    actors: List[NfoActor] = field(default_factory=list)
    ratings: List[NfoRating] = field(default_factory=list)
    uniqueids: Dict[str, str] = field(default_factory=dict)
    poster: str = ''
    fanart: str = ''
    trailer: str = ''

    # Source markup of the poster <thumb> and the <fanart> container;
    # re-emitted verbatim while poster/fanart are unchanged
    poster_raw: str = ''
    fanart_raw: str = ''
    # <thumb> entries other than the poster (raw XML)
    extra_thumbs: List[str] = field(default_factory=list)
    # uniqueid type flagged default="true"
    default_uniqueid: str = ''

    extras: Dict[str, List[str]] = field(default_factory=dict)


# --- Batch Outcomes ---

@dataclass
class OperationResult:
    path: str
    success: bool
    error: Optional[str] = None


@dataclass
class ProbeOutcome:
    path: str
    metadata: Optional[VideoMetadata] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.metadata is not None


@dataclass
class DeletionReport:
    results: List[OperationResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> List[OperationResult]:
        return [r for r in self.results if not r.success]
