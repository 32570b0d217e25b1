"""
Backup, restore and cleanup of renamed directories.

Before a destructive rename the manager snapshots every file about to be
renamed into ``<dir>/<backup dir name>/`` (hard links when possible, byte copies
otherwise) and writes ``mappings.json`` (old name -> new name) next to them.
Each backup is recorded in the global registry so that ``clean_all`` can find
it later. Once the renames are done, ``commit`` trims the backup to the files that were
actually renamed.

Undo (``restore``) is a teardown, not an inverse rename: the renamed files are
deleted and the snapshots are copied back, then the backup and its registry
entry are removed.
"""
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

from autotitle.backup.registry import BackupRegistry, JsonFileRegistry
from autotitle.errors import BackupError, BackupNotFoundError
from autotitle.models import BackupRecord
from autotitle.utils import constants
from autotitle.utils.file_util import copy_file
from autotitle.utils.logger import LogLevel, log


class BackupManager:
    """Creates, restores and removes per-directory backups."""

    def __init__(self, registry: BackupRegistry, dir_name: str = constants.DEFAULT_BACKUP_DIR_NAME):
        self.registry = registry
        self.dir_name = dir_name or constants.DEFAULT_BACKUP_DIR_NAME

    @classmethod
    def from_cache_root(cls, cache_root=None, dir_name: str = constants.DEFAULT_BACKUP_DIR_NAME) -> "BackupManager":
        """Manager whose registry lives in ``<cache_root>/backup_registry.json``."""
        root = Path(cache_root) if cache_root else constants.CACHE_ROOT
        return cls(JsonFileRegistry(root / constants.REGISTRY_FILE_NAME), dir_name)

    def backup_path(self, directory) -> Path:
        return Path(directory).resolve() / self.dir_name

    def backup(self, directory, mappings: Dict[str, str]) -> Dict[str, str]:
        """
        Snapshot the files named by ``mappings`` before they are renamed.

        Any earlier backup for the directory is discarded first. A file that
        cannot be copied is left out of the manifest and reported back, so the
        caller can skip its rename.

        Args:
            directory: Directory holding the files.
            mappings: Old filename -> new filename.

        Returns:
            Old filename -> error text for every file that could not be backed up.

        Raises:
            BackupError: when the backup directory, manifest or registry cannot be written.
        """
        abs_dir = Path(directory).resolve()
        backup_path = abs_dir / self.dir_name
        self._discard(abs_dir)

        try:
            backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"failed to create backup dir {backup_path}: {e}")

        saved: Dict[str, str] = {}
        failures: Dict[str, str] = {}
        linked = 0
        for old_name, new_name in mappings.items():
            try:
                if copy_file(abs_dir / old_name, backup_path / old_name):
                    linked += 1
                saved[old_name] = new_name
            except OSError as e:
                failures[old_name] = str(e)
                log("backup.file_failed", LogLevel.WARN, file=old_name, error=str(e))

        self._write_mappings(backup_path, saved)

        records = self.registry.load_all()
        records.append(BackupRecord(
            path=str(backup_path),
            source_dir=str(abs_dir),
            timestamp=datetime.now(timezone.utc),
        ))
        self.registry.replace_all(records)

        log(
            "backup.create",
            LogLevel.INFO,
            dir=str(abs_dir),
            files=len(saved),
            hardlinked=linked,
            failed=len(failures),
        )
        return failures

    def commit(self, directory, renamed: Dict[str, str]) -> None:
        """
        Narrow the backup for ``directory`` to the renames that actually happened.

        Snapshots of files that were not renamed are dropped so that a later
        undo never deletes a file it did not create. With nothing renamed the
        whole backup is discarded.

        Raises:
            BackupNotFoundError: when the directory has no backup manifest.
            BackupError: when the manifest or backup directory cannot be written.
        """
        abs_dir = Path(directory).resolve()
        backup_path = abs_dir / self.dir_name
        previous = self.read_mappings(abs_dir)
        if not renamed:
            self._discard(abs_dir)
            log("backup.commit", LogLevel.INFO, dir=str(abs_dir), files=0, discarded=True)
            return

        kept = {old: new for old, new in previous.items() if renamed.get(old) == new}
        for old_name in previous:
            if old_name not in kept:
                try:
                    (backup_path / old_name).unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise BackupError(f"failed to drop snapshot {old_name}: {e}")
        self._write_mappings(backup_path, kept)
        log("backup.commit", LogLevel.INFO, dir=str(abs_dir), files=len(kept), dropped=len(previous) - len(kept))

    def read_mappings(self, directory) -> Dict[str, str]:
        mappings_path = self.backup_path(directory) / constants.MAPPINGS_FILE_NAME
        if not mappings_path.is_file():
            raise BackupNotFoundError(Path(directory).resolve())
        try:
            with open(mappings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise BackupError(f"failed to parse mappings: {e}")
        if not isinstance(data, dict):
            raise BackupError(f"failed to parse mappings: expected an object in {mappings_path}")
        return data

    def restore(self, directory) -> int:
        """
        Undo a rename for ``directory`` and remove its backup.

        All renamed files are deleted before any original is put back, so
        renames that chained into each other's names restore correctly.

        Returns:
            Number of files restored.

        Raises:
            BackupNotFoundError: when the directory has no backup manifest.
            BackupError: when a file cannot be restored (the backup is kept).
        """
        abs_dir = Path(directory).resolve()
        backup_path = abs_dir / self.dir_name
        mappings = self.read_mappings(abs_dir)

        missing = [old for old in mappings if not (backup_path / old).is_file()]
        if missing:
            raise BackupError(f"backup is missing snapshot(s): {', '.join(sorted(missing))}")

        for new_name in mappings.values():
            renamed = abs_dir / new_name
            if renamed.is_file():
                try:
                    renamed.unlink()
                except OSError as e:
                    raise BackupError(f"failed to remove renamed file {new_name}: {e}")

        for old_name in mappings:
            try:
                copy_file(backup_path / old_name, abs_dir / old_name)
            except OSError as e:
                raise BackupError(f"failed to restore file {old_name}: {e}")

        log("backup.restore", LogLevel.INFO, dir=str(abs_dir), files=len(mappings))
        self._discard(abs_dir)
        return len(mappings)

    def clean(self, directory) -> None:
        """
        Remove the backup for ``directory`` without restoring anything.

        Raises:
            BackupNotFoundError: when neither a backup directory nor a registry entry exists.
        """
        abs_dir = Path(directory).resolve()
        registered = any(r.source_dir == str(abs_dir) for r in self.registry.load_all())
        if not (abs_dir / self.dir_name).exists() and not registered:
            raise BackupNotFoundError(abs_dir)
        self._discard(abs_dir)
        log("backup.clean", LogLevel.INFO, dir=str(abs_dir))

    def list_all(self) -> List[BackupRecord]:
        return self.registry.load_all()

    def clean_all(self) -> int:
        """Remove every registered backup directory and empty the registry."""
        records = self.registry.load_all()
        for record in records:
            try:
                shutil.rmtree(record.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                log("backup.clean_all.failed", LogLevel.WARN, path=record.path, error=str(e))
        self.registry.replace_all([])
        log("backup.clean_all", LogLevel.INFO, removed=len(records))
        return len(records)

    @staticmethod
    def _write_mappings(backup_path: Path, mappings: Dict[str, str]) -> None:
        try:
            with open(backup_path / constants.MAPPINGS_FILE_NAME, "w", encoding="utf-8") as f:
                json.dump(mappings, f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise BackupError(f"failed to write mappings file: {e}")

    def _discard(self, abs_dir: Path) -> None:
        backup_path = abs_dir / self.dir_name
        if backup_path.exists():
            try:
                shutil.rmtree(backup_path)
            except OSError as e:
                raise BackupError(f"failed to remove backup dir {backup_path}: {e}")

        records = self.registry.load_all()
        kept = [r for r in records if r.source_dir != str(abs_dir)]
        if len(kept) != len(records):
            self.registry.replace_all(kept)
