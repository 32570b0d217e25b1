"""
Core domain types shared by the renamer, the backup manager and the CLI.

- Episode / Media: canonical metadata supplied by a provider. The renamer only
  reads these; it never mutates them.
- RenameOperation: one planned or executed rename, with its status.
- Event: a progress notification emitted while a run is in flight.
- BackupRecord: an entry of the global backup registry.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional


@dataclass(frozen=True)
class Episode:
    """A single episode, numbered the way the metadata database numbers it."""

    number: int
    title: str = ""
    is_filler: bool = False
    air_date: Optional[str] = None


@dataclass
class Media:
    """A series with its title variants and episode list."""

    title: str
    title_en: str = ""
    title_jp: str = ""
    id: str = ""
    provider: str = ""
    episode_count: int = 0
    episodes: List[Episode] = field(default_factory=list)

    def get_title(self, variant: str) -> str:
        """Return the requested title variant, falling back to the default title."""
        if variant in ("SERIES_JP", "JP") and self.title_jp:
            return self.title_jp
        if variant in ("SERIES_EN", "EN") and self.title_en:
            return self.title_en
        return self.title

    def get_episode(self, number: int) -> Optional[Episode]:
        for ep in self.episodes:
            if ep.number == number:
                return ep
        return None

    def max_episode_number(self) -> int:
        return max([self.episode_count] + [ep.number for ep in self.episodes])


class OperationStatus(Enum):
    """Lifecycle of a RenameOperation: PENDING moves to exactly one terminal state."""
    PENDING = "pending"
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RenameOperation:
    """A planned file rename and its outcome."""

    source_path: Path
    target_path: Path
    episode: Optional[Episode] = None
    status: OperationStatus = OperationStatus.PENDING
    error: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status is not OperationStatus.PENDING

    def mark(self, status: OperationStatus, error: str = "") -> None:
        """Move a pending operation to a terminal state."""
        if self.is_terminal:
            raise ValueError(f"operation for {self.source_path.name} is already {self.status.value}")
        self.status = status
        self.error = error


class EventType(Enum):
    """Progress event types."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    type: EventType
    message: str


EventHandler = Callable[[Event], None]


@dataclass
class BackupRecord:
    """Global registry entry for one directory's backup."""

    path: str
    source_dir: str
    timestamp: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "BackupRecord":
        return cls(
            path=data["path"],
            source_dir=data["source_dir"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
