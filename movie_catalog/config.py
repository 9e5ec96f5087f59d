"""
Configuration constants for the movie catalog.
"""
import re

# --- File Type Definitions ---
VIDEO_EXTS = {
    '.mp4', '.mkv', '.avi', '.wmv', '.mov', '.webm', '.flv', '.f4v', '.mpg', '.mpeg',
    '.m4v', '.ts', '.mts', '.m2ts', '.vob', '.3gp', '.ogv', '.rmvb', '.rm',
}
POSTER_IMAGE_EXTS = ('.jpg', '.jpeg', '.png', '.webp')

# --- Sidecar (NFO) Files ---
NFO_EXT = '.nfo'
GENERIC_NFO_NAME = 'movie.nfo'
NFO_BACKUP_SUFFIX = '.bak'
NFO_ROOT_TAG = 'movie'
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
DEFAULT_UNIQUEID_TYPE = 'default'
DEFAULT_RATING_MAX = 10

# --- Multi-part Naming ---
# Requires an explicit separator before the keyword: "Movie-cd1", "Movie part2", "Movie.disc3"
PART_KEYWORDS = ('cd', 'disc', 'disk', 'part')
PART_PATTERN = re.compile(r'[-_ .](' + '|'.join(PART_KEYWORDS) + r')(\d+)$', re.IGNORECASE)

# --- Scanning & Performance ---
DIR_PARALLEL = 20       # concurrent subdirectory listings (slow network shares)
FILE_PARALLEL = 40      # concurrent per-file stat calls
PROBE_BATCH_SIZE = 10   # technical probes in flight at once
NFO_BATCH_SIZE = 20
NET_USE_TIMEOUT = 5     # seconds

# --- Duplicate Ranking ---
# Higher = newer/better. Unknown codecs rank 0, files without probe data rank -1.
CODEC_RANK = {
    'av1': 5,
    'hevc': 4,
    'h265': 4,
    'vp9': 3,
    'h264': 2,
    'avc': 2,
    'mpeg4': 1,
    'mpeg2video': 0,
    'mpeg1video': 0,
}
UNKNOWN_CODEC_RANK = 0
MISSING_CODEC_RANK = -1

# --- Persistence ---
DEFAULT_CACHE_DB = 'movie_catalog_cache.db'
DEFAULT_SNAPSHOT = 'scan-cache.json'
