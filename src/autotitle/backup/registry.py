"""
The global backup registry: one list of BackupRecord entries across all
directories, used by global undo and clean-all.

The registry is read and written whole. ``BackupRegistry`` is the interface the
backup manager depends on; ``JsonFileRegistry`` stores it as a JSON array and
replaces the file atomically (temp file + ``os.replace``) so a crash never
leaves a half-written registry. There is no cross-process locking.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import List, Protocol

from autotitle.errors import BackupError
from autotitle.models import BackupRecord
from autotitle.utils.logger import LogLevel, log


class BackupRegistry(Protocol):
    def load_all(self) -> List[BackupRecord]:
        ...

    def replace_all(self, records: List[BackupRecord]) -> None:
        ...


class JsonFileRegistry:
    """BackupRegistry stored as a JSON file (typically ``~/.cache/autotitle/backup_registry.json``)."""

    def __init__(self, path):
        self.path = Path(path)

    def load_all(self) -> List[BackupRecord]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [BackupRecord.from_dict(item) for item in data or []]
        except (ValueError, KeyError, TypeError) as e:
            # An unreadable registry is treated as empty, like a fresh install.
            log("backup.registry.corrupt", LogLevel.WARN, path=str(self.path), error=str(e))
            return []
        except OSError as e:
            raise BackupError(f"failed to read registry {self.path}: {e}")

    def replace_all(self, records: List[BackupRecord]) -> None:
        data = [r.to_dict() for r in records]
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                    "w", encoding="utf-8", dir=self.path.parent, prefix=".registry-", suffix=".tmp", delete=False
            ) as f:
                tmp_name = f.name
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise BackupError(f"failed to write registry {self.path}: {e}")
