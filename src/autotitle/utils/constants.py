"""
Constants and configuration settings for template-driven renaming.

This module contains the placeholder vocabulary understood by the template
compiler, the default set of media extensions, backup/registry file names, and
operation status strings. Environment overrides are read from the process
environment (and a local ``.env`` file, when present) at import time.
"""

import os
import re
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Template placeholders (bare names, as written between double braces)
PLACEHOLDER_SERIES = "SERIES"
PLACEHOLDER_SERIES_EN = "SERIES_EN"
PLACEHOLDER_SERIES_JP = "SERIES_JP"
PLACEHOLDER_EP_NUM = "EP_NUM"
PLACEHOLDER_EP_NAME = "EP_NAME"
PLACEHOLDER_FILLER = "FILLER"
PLACEHOLDER_RES = "RES"
PLACEHOLDER_EXT = "EXT"
PLACEHOLDER_ANY = "ANY"

# Placeholder -> (capture field name, sub-pattern)
PLACEHOLDER_RULES = {
    PLACEHOLDER_SERIES: ("Series", r".+?"),
    PLACEHOLDER_SERIES_EN: ("SeriesEn", r".+?"),
    PLACEHOLDER_SERIES_JP: ("SeriesJp", r".+?"),
    PLACEHOLDER_EP_NUM: ("EpNum", r"\d+"),
    PLACEHOLDER_EP_NAME: ("EpName", r".+?"),
    PLACEHOLDER_FILLER: ("Filler", r".*?"),
    PLACEHOLDER_RES: ("Res", r"\d{3,4}p|\d{3,4}x\d{3,4}"),
    PLACEHOLDER_ANY: ("Any", r".*?"),
}

PLACEHOLDER_REGEX = re.compile(r"\{\{([A-Z_]+)\}\}")

# Output field list
FIELD_GLUE = "+"
FILLER_MARKER = "[F]"
DEFAULT_EP_PADDING = 3
MIN_AUTO_PADDING = 2

# Accepted media file extensions (without the leading dot)
DEFAULT_FORMATS = ["mkv", "mp4", "avi", "webm", "m4v", "ts", "flv"]

# Configuration files
DEFAULT_MAP_FILE = "_autotitle.yml"
GLOBAL_CONFIG_DIRS = [
    Path.home() / ".config" / "autotitle",
    Path("/etc") / "autotitle",
]
GLOBAL_CONFIG_NAMES = ["config.yml", "config.yaml"]

# Backup settings
DEFAULT_BACKUP_DIR_NAME = ".autotitle_backup"
MAPPINGS_FILE_NAME = "mappings.json"
REGISTRY_FILE_NAME = "backup_registry.json"
CACHE_ROOT = Path(os.getenv("AUTOTITLE_CACHE_DIR") or Path.home() / ".cache" / "autotitle")

# Metadata API configuration
JIKAN_BASE_URL = os.getenv("JIKAN_BASE_URL", "https://api.jikan.moe/v4")
FILLER_LIST_BASE_URL = os.getenv("AUTOTITLE_FILLER_LIST_BASE_URL", "https://www.animefillerlist.com/shows")
USER_AGENT = "Mozilla/5.0 (compatible; Autotitle/1.0; +https://github.com/mydehq/autotitle)"
DEFAULT_RATE_LIMIT = 2.0  # requests per second
DEFAULT_TIMEOUT = 30  # seconds

# Rename operation messages
MSG_UNCHANGED = "unchanged"
MSG_COLLISION = "Collision"
MSG_TARGET_EXISTS = "target already exists"
TEMP_NAME_PREFIX = ".__autotitle_tmp__"
