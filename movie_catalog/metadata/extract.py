import logging
import subprocess
import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

from pymediainfo import MediaInfo

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import VideoMetadata, ProbeOutcome

# MediaInfo "Format" -> ffprobe codec_name
MEDIAINFO_VIDEO_CODECS = {
    'avc': 'h264',
    'hevc': 'hevc',
    'av1': 'av1',
    'vp9': 'vp9',
    'vp8': 'vp8',
    'mpeg-4 visual': 'mpeg4',
    'xvid': 'mpeg4',
    'divx': 'mpeg4',
    'vc-1': 'vc1',
    'realvideo 4': 'rv40',
}
MEDIAINFO_AUDIO_CODECS = {
    'aac': 'aac',
    'ac-3': 'ac3',
    'e-ac-3': 'eac3',
    'dts': 'dts',
    'flac': 'flac',
    'opus': 'opus',
    'vorbis': 'vorbis',
    'mlp fba': 'truehd',
    'pcm': 'pcm_s16le',
    'wma': 'wmav2',
}


def parse_frame_rate(rational: str) -> str:
    """'24000/1001' -> '23.976'. Non-rational input is returned unchanged."""
    parts = rational.split('/')
    if len(parts) == 2:
        try:
            num = int(parts[0])
            den = int(parts[1])
        except ValueError:
            return rational
        if den > 0:
            return f"{num / den:.3f}"
    return rational


class MetadataExtractor:
    """
    Technical metadata probe for video files.

    Strategies:
      - 'pymediainfo' (fast wrapper around libmediainfo)
      - 'ffprobe' JSON output (robust fallback, requires system install)
    """

    def get_video_metadata(self, path: Union[str, Path]) -> VideoMetadata:
        """
        Raises:
            MetadataExtractionError: no strategy produced usable data.
        """
        # Strategy 1: MediaInfo
        try:
            meta = self._extract_mediainfo(Path(path))
            if meta.width or meta.duration:
                return meta
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        # Strategy 2: ffprobe
        try:
            return self._extract_ffprobe(Path(path))
        except Exception as e:
            raise MetadataExtractionError(f"Probe failed for {path}: {e}") from e

    def probe_available(self) -> bool:
        """True if at least one probe backend can run on this machine."""
        try:
            if MediaInfo.can_parse():
                return True
        except Exception as e:
            logging.debug(f"MediaInfo unavailable: {e}")

        try:
            subprocess.run(['ffprobe', '-version'], capture_output=True, check=True, timeout=10)
            return True
        except (OSError, subprocess.SubprocessError):
            return False

    def probe_batch(self,
                    paths: List[str],
                    batch_size: int = config.PROBE_BATCH_SIZE) -> List[ProbeOutcome]:
        """
        Probes every path, batch_size at a time. One failure never aborts
        the batch; every input gets a ProbeOutcome in input order.
        """
        outcomes: List[ProbeOutcome] = []
        if not paths:
            return outcomes

        with ThreadPoolExecutor(max_workers=max(1, batch_size)) as executor:
            for i in range(0, len(paths), batch_size):
                batch = paths[i:i + batch_size]
                outcomes.extend(executor.map(self._probe_one, batch))

        failed = sum(1 for o in outcomes if not o.success)
        if failed:
            logging.warning(f"Metadata probe failed for {failed} of {len(outcomes)} files.")
        return outcomes

    def _probe_one(self, path: str) -> ProbeOutcome:
        try:
            return ProbeOutcome(path=path, metadata=self.get_video_metadata(path))
        except Exception as e:
            return ProbeOutcome(path=path, error=str(e))

    # --- Internal Extraction Helpers ---

    def _extract_mediainfo(self, path: Path) -> VideoMetadata:
        """Parses video using pymediainfo."""
        mi = MediaInfo.parse(str(path))
        meta = VideoMetadata()
        have_video = False
        have_audio = False

        for track in mi.tracks:
            if track.track_type == "General":
                if getattr(track, "duration", None):
                    # MediaInfo duration is in milliseconds
                    meta.duration = float(track.duration) / 1000.0
                if getattr(track, "overall_bit_rate", None):
                    meta.bitrate = int(float(track.overall_bit_rate))

            elif track.track_type == "Video" and not have_video:
                have_video = True
                fmt = (getattr(track, "format", None) or '').lower()
                meta.video_codec = self._video_codec_name(fmt, getattr(track, "format_version", None))
                meta.width = int(getattr(track, "width", None) or 0)
                meta.height = int(getattr(track, "height", None) or 0)
                if getattr(track, "frame_rate", None):
                    meta.frame_rate = f"{float(track.frame_rate):.3f}"

            elif track.track_type == "Audio" and not have_audio:
                have_audio = True
                fmt = (getattr(track, "format", None) or '').lower()
                meta.audio_codec = self._audio_codec_name(fmt, getattr(track, "format_profile", None))
                channels = getattr(track, "channel_s", None)
                if channels:
                    # e.g. "6" or "8 / 6" for object-based audio
                    meta.audio_channels = int(str(channels).split('/')[0].strip())
        return meta

    def _video_codec_name(self, fmt: str, version: Optional[str]) -> str:
        if not fmt:
            return 'unknown'
        if fmt == 'mpeg video':
            return 'mpeg1video' if version and '1' in str(version) else 'mpeg2video'
        return MEDIAINFO_VIDEO_CODECS.get(fmt, fmt)

    def _audio_codec_name(self, fmt: str, profile: Optional[str]) -> str:
        if not fmt:
            return 'unknown'
        if fmt == 'mpeg audio':
            return 'mp3' if profile and 'layer 3' in str(profile).lower() else 'mp2'
        return MEDIAINFO_AUDIO_CODECS.get(fmt, fmt)

    def _extract_ffprobe(self, path: Path) -> VideoMetadata:
        """
        Wraps the 'ffprobe' command line utility.
        Must be installed and on the system PATH.
        """
        cmd = [
            "ffprobe", "-v", "quiet", "-print_format", "json",
            "-show_format", "-show_streams", str(path),
        ]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data: Dict[str, Any] = json.loads(out)

        streams = data.get('streams') or []
        video = next((s for s in streams if s.get('codec_type') == 'video'), {})
        audio = next((s for s in streams if s.get('codec_type') == 'audio'), {})
        fmt = data.get('format') or {}

        return VideoMetadata(
            video_codec=video.get('codec_name') or 'unknown',
            width=int(video.get('width') or 0),
            height=int(video.get('height') or 0),
            duration=float(fmt.get('duration') or video.get('duration') or 0),
            bitrate=int(fmt.get('bit_rate') or 0),
            frame_rate=parse_frame_rate(video.get('r_frame_rate') or '0/1'),
            audio_codec=audio.get('codec_name') or 'unknown',
            audio_channels=int(audio.get('channels') or 0),
        )
