"""High-level rename, undo and clean entry points for one directory.

These functions wire the pieces together the way the command line uses them:
load the global config and the directory's map file, resolve the target,
fetch the series metadata, and run the Renamer with a BackupManager whose
registry lives in the user cache root. Undo and clean go straight to the
BackupManager.
"""
import threading
from pathlib import Path
from typing import Dict, List, Optional

from autotitle import config
from autotitle.backup import BackupManager
from autotitle.errors import ProviderNotFoundError
from autotitle.models import BackupRecord, EventHandler, OperationStatus, RenameOperation
from autotitle.rename.core import Renamer
from autotitle.utils import fillerlist, jikan
from autotitle.utils.logger import LogLevel, log


def _backup_manager(global_cfg: config.GlobalConfig, backup_manager: Optional[BackupManager]) -> BackupManager:
    return backup_manager or BackupManager.from_cache_root(dir_name=global_cfg.backup.dir_name)


def _mark_fillers(media, filler_url: str, filler_source, global_cfg: config.GlobalConfig):
    if filler_source is None:
        if not fillerlist.matches_url(filler_url):
            log("rename.filler_url", LogLevel.WARN, url=filler_url, msg="unsupported filler source, ignored")
            return media
        filler_source = fillerlist.FillerListClient(timeout=global_cfg.api.timeout)
    numbers = filler_source.fetch_fillers(filler_url)
    return fillerlist.apply_fillers(media, numbers)


def summarize(operations: List[RenameOperation]) -> Dict[str, int]:
    """Count operations per status value."""
    counts = {status.value: 0 for status in OperationStatus}
    for op in operations:
        counts[op.status.value] += 1
    return counts


def rename_directory(
        directory,
        map_file=None,
        provider=None,
        filler_source=None,
        global_cfg: Optional[config.GlobalConfig] = None,
        backup_manager: Optional[BackupManager] = None,
        dry_run: bool = False,
        no_backup: bool = False,
        offset: Optional[int] = None,
        events: Optional[EventHandler] = None,
        progress: bool = False,
        cancel: Optional[threading.Event] = None,
) -> List[RenameOperation]:
    """Rename the media files of ``directory`` according to its map file.

    Args:
        directory (Path | str): Directory to process.
        map_file (Path | str | None): Explicit map file; defaults to the
            directory's ``_autotitle.yml`` (or the global ``map_file`` name).
        provider: Object with ``fetch_media(url)``; defaults to a JikanClient
            configured from the global ``api`` settings.
        filler_source: Object with ``fetch_fillers(url)``, consulted when the
            target has a ``filler_url``; defaults to a FillerListClient.
        global_cfg (GlobalConfig | None): Preloaded global configuration.
        backup_manager (BackupManager | None): Defaults to the cache-root registry.
        dry_run (bool): Plan and report without touching files.
        no_backup (bool): Skip the backup even if enabled globally.
        offset (int | None): Explicit offset overriding the configured ones.
        events: Progress event callback.
        progress (bool): Show a progress bar during renames.
        cancel (threading.Event | None): Checked between files.

    Returns:
        list[RenameOperation]: Every operation considered.
    """
    directory = Path(directory)
    global_cfg = global_cfg or config.load_global()
    if map_file:
        cfg = config.load_file(map_file)
    else:
        cfg = config.load_map(directory, global_cfg.map_file)
    target = cfg.resolve_target(directory)

    if provider is None:
        if not jikan.matches_url(target.url):
            raise ProviderNotFoundError(target.url)
        provider = jikan.JikanClient(rate_limit=global_cfg.api.rate_limit, timeout=global_cfg.api.timeout)
    media = provider.fetch_media(target.url)
    if target.filler_url:
        media = _mark_fillers(media, target.filler_url, filler_source, global_cfg)

    renamer = Renamer(
        backup_manager=_backup_manager(global_cfg, backup_manager),
        formats=global_cfg.formats,
        dry_run=dry_run,
        backup_enabled=global_cfg.backup.enabled and not no_backup,
        offset=offset,
        events=events,
        progress=progress,
    )
    operations = renamer.execute(directory, target, media, cancel=cancel)

    counts = summarize(operations)
    log("rename.summary", LogLevel.INFO, dir=str(directory), dry_run=dry_run, **counts)
    return operations


def undo_directory(directory, global_cfg=None, backup_manager=None) -> int:
    """Restore the original filenames of ``directory`` from its backup."""
    global_cfg = global_cfg or config.load_global()
    return _backup_manager(global_cfg, backup_manager).restore(directory)


def clean_directory(directory, global_cfg=None, backup_manager=None) -> None:
    global_cfg = global_cfg or config.load_global()
    _backup_manager(global_cfg, backup_manager).clean(directory)


def clean_all(global_cfg=None, backup_manager=None) -> int:
    global_cfg = global_cfg or config.load_global()
    return _backup_manager(global_cfg, backup_manager).clean_all()


def list_backups(global_cfg=None, backup_manager=None) -> List[BackupRecord]:
    global_cfg = global_cfg or config.load_global()
    return _backup_manager(global_cfg, backup_manager).list_all()
