"""
Filesystem helpers shared by the renamer and the backup manager.

Includes filename sanitization for metadata-derived values, the
hardlink-then-copy primitive used for backup snapshots and restores, and
media extension filtering.
"""
import os
import shutil
from pathlib import Path
from typing import Iterable

from autotitle.utils.logger import LogLevel, log


def sanitize_filename(name: str) -> str:
    """
    Remove invalid filesystem characters from a name.
    Uses str.translate() for optimal performance.
    """
    invalid_chars = '<>:"/\\|?*'
    translation_table = str.maketrans('', '', invalid_chars)
    return name.translate(translation_table).strip()


def is_media_file(path: Path, formats: Iterable[str]) -> bool:
    """Return True when ``path`` has one of ``formats`` as extension (case-insensitive, no dot)."""
    ext = path.suffix.lower().lstrip(".")
    return bool(ext) and ext in {f.lower().lstrip(".") for f in formats}


def copy_file(src: Path, dst: Path) -> bool:
    """
    Place a copy of ``src`` at ``dst``, preferring a hard link.

    Step one attempts ``os.link``; on any ``OSError`` (cross-device, unsupported
    filesystem, permissions) step two streams the bytes with ``shutil.copyfile``.
    An existing ``dst`` is replaced.

    Returns:
        True if a hard link was created, False if the bytes were copied.

    Raises:
        OSError: when the byte copy fails as well.
    """
    if dst.exists():
        dst.unlink()
    try:
        os.link(src, dst)
        return True
    except OSError as e:
        log("file.link_fallback", LogLevel.DEBUG, src=str(src), dst=str(dst), reason=str(e))

    shutil.copyfile(src, dst)
    return False
