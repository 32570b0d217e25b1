"""
Backup and undo support for rename runs.

- manager: per-directory snapshots (``BackupManager``), restore, clean, clean-all.
- registry: the global list of active backups (``BackupRegistry`` interface and
  the JSON-file implementation).
"""
from .manager import BackupManager
from .registry import BackupRegistry, JsonFileRegistry

__all__ = ["BackupManager", "BackupRegistry", "JsonFileRegistry"]
