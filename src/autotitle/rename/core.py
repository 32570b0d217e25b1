"""
The rename transaction engine.

``Renamer.execute`` scans one directory, matches each media file against the
target's templates, maps the matched episode number through the offset, looks
the episode up in the supplied Media, and builds a new filename. Planned
operations then pass through three gates before anything is renamed:

1. Collision: a target already claimed by an earlier file is skipped.
2. Existing file: a target that exists on disk and is not itself being renamed
   away is skipped.
3. Backup: every file about to be renamed is snapshotted; a file whose
   snapshot fails is not renamed.

Files are processed in lexical name order, which is also the collision
tie-break order (the first file wins). Renames go through a temporary name so
batches whose targets overlap other sources (A->B, B->C) never clobber.

Every per-file decision is reported as an Event and logged.
"""
import os
import threading
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from tqdm import tqdm

from autotitle.backup import BackupManager
from autotitle.config import Pattern, Target
from autotitle.errors import (
    AutotitleError,
    CompileError,
    EpisodeNotFoundError,
    GenerationError,
    NoValidPatternsError,
    OperationCancelledError,
    PatternNotMatchedError,
)
from autotitle.models import Event, EventHandler, EventType, Media, OperationStatus, RenameOperation
from autotitle.rename.formatter import TemplateVars, build_filename
from autotitle.rename.parser import CompiledMatcher, MatchResult, compile_template
from autotitle.utils import constants, file_util
from autotitle.utils.logger import LogLevel, log

_EVENT_LEVELS = {
    EventType.INFO: LogLevel.INFO,
    EventType.SUCCESS: LogLevel.INFO,
    EventType.WARNING: LogLevel.WARN,
    EventType.ERROR: LogLevel.ERROR,
}


def calculate_auto_padding(media: Media) -> int:
    """Digit count of the highest episode number, never below 2."""
    return max(constants.MIN_AUTO_PADDING, len(str(media.max_episode_number())))


def resolve_offset(override: Optional[int], pattern: Optional[Pattern]) -> int:
    """An explicit override wins over the pattern's configured offset; default 0."""
    if override is not None:
        return override
    if pattern is not None:
        return pattern.output.offset
    return 0


class Renamer:
    """
    Plans and performs renames for one directory at a time.

    Parameters:
    - backup_manager: Used to snapshot files before renaming (required unless
      backups are disabled or dry_run is set).
    - formats: Accepted media extensions without the dot; defaults to the
      package defaults.
    - dry_run: Plan and report only; touch nothing.
    - backup_enabled: Snapshot files before renaming.
    - offset: Explicit episode offset overriding every pattern's offset.
    - events: Callback receiving every progress Event.
    - progress: Show a tqdm bar during the rename pass.
    """

    def __init__(
            self,
            backup_manager: Optional[BackupManager] = None,
            formats: Optional[List[str]] = None,
            dry_run: bool = False,
            backup_enabled: bool = True,
            offset: Optional[int] = None,
            events: Optional[EventHandler] = None,
            progress: bool = False,
    ):
        self.backup_manager = backup_manager
        self.formats = formats or list(constants.DEFAULT_FORMATS)
        self.dry_run = dry_run
        self.backup_enabled = backup_enabled
        self.offset = offset
        self.events = events
        self.progress = progress

    def execute(
            self,
            directory,
            target: Target,
            media: Media,
            cancel: Optional[threading.Event] = None,
    ) -> List[RenameOperation]:
        """
        Plan, back up and perform the renames for ``directory``.

        Returns:
            Every operation considered, in directory order. Skipped operations
            carry the reason in ``error``; in dry-run mode planned operations
            stay PENDING.

        Raises:
            NoValidPatternsError: when no template of ``target`` compiles.
            BackupError: when the backup directory cannot be prepared.
            OperationCancelledError: when ``cancel`` is set before the rename pass.
            AutotitleError: when the directory cannot be read.
        """
        directory = Path(directory)
        try:
            entries = sorted((p for p in directory.iterdir() if p.is_file()), key=lambda p: p.name)
        except OSError as e:
            raise AutotitleError(f"failed to read directory {directory}: {e}")

        matchers = self._compile_patterns(target)
        auto_padding = calculate_auto_padding(media)

        operations: List[RenameOperation] = []
        mappings: Dict[str, str] = {}
        claimed: Dict[Path, RenameOperation] = {}

        for entry in entries:
            self._check_cancel(cancel)
            if not file_util.is_media_file(entry, self.formats):
                continue
            op = self._plan(directory, entry.name, matchers, media, auto_padding)
            if op is None:
                continue

            if op.is_terminal:
                pass
            elif op.target_path in claimed:
                winner = claimed[op.target_path].source_path.name
                op.mark(
                    OperationStatus.SKIPPED,
                    f"{constants.MSG_COLLISION}: {op.target_path.name} already claimed by {winner}",
                )
                self._emit(EventType.WARNING, f"Collision: {entry.name} → {op.target_path.name} (kept {winner})")
            else:
                claimed[op.target_path] = op
                mappings[entry.name] = op.target_path.name
                if self.dry_run:
                    self._emit(EventType.INFO, f"[DRY-RUN] {entry.name} → {op.target_path.name}")
            operations.append(op)

        self._guard_existing_targets(directory, operations, mappings)

        self._check_cancel(cancel)
        backed_up = self._perform_backup(directory, operations, mappings)
        self._perform_renames(operations)
        if backed_up:
            self._commit_backup(directory, operations)
        return operations

    def _compile_patterns(self, target: Target) -> List[Tuple[CompiledMatcher, Pattern]]:
        compiled = []
        errors = []
        for pattern in target.patterns:
            for template in pattern.input:
                try:
                    compiled.append((compile_template(template), pattern))
                except CompileError as e:
                    errors.append(f"Invalid pattern '{e.template}': {e.reason}")

        if errors:
            self._emit(EventType.WARNING, "; ".join(errors))
        if not compiled:
            raise NoValidPatternsError("; ".join(errors) or "target has no input templates")
        return compiled

    @staticmethod
    def _match(filename: str, matchers) -> Optional[Tuple[MatchResult, Pattern]]:
        # First template in declaration order wins.
        for matcher, pattern in matchers:
            result = matcher.match_typed(filename)
            if result is not None:
                return result, pattern
        return None

    def _plan(self, directory: Path, filename: str, matchers, media: Media, auto_padding: int):
        found = self._match(filename, matchers)
        if found is None:
            self._emit(EventType.WARNING, str(PatternNotMatchedError(filename)))
            return None
        result, pattern = found

        offset = resolve_offset(self.offset, pattern)
        number = result.episode_number + offset
        episode = media.get_episode(number)
        if episode is None:
            err = EpisodeNotFoundError(result.episode_number, number if offset else None)
            self._emit(EventType.WARNING, f"{err} ({filename})")
            return None

        tpl_vars = TemplateVars(
            series=file_util.sanitize_filename(media.get_title("SERIES")),
            series_en=file_util.sanitize_filename(media.get_title("SERIES_EN")),
            series_jp=file_util.sanitize_filename(media.get_title("SERIES_JP")),
            ep_num=str(episode.number),
            ep_name=file_util.sanitize_filename(episode.title),
            filler=constants.FILLER_MARKER if episode.is_filler else "",
            res=result.resolution,
            ext=result.extension,
        )
        output = pattern.output
        try:
            new_name = build_filename(output.fields, output.separator, tpl_vars, output.padding or auto_padding)
        except GenerationError as e:
            self._emit(EventType.ERROR, f"Failed to generate filename for {filename}: {e}")
            return None

        op = RenameOperation(source_path=directory / filename, target_path=directory / new_name, episode=episode)
        if new_name == filename:
            op.mark(OperationStatus.SKIPPED, constants.MSG_UNCHANGED)
            self._emit(EventType.INFO, f"Skipped (unchanged): {filename}")
        return op

    def _guard_existing_targets(self, directory: Path, operations, mappings: Dict[str, str]) -> None:
        # Skipping one op keeps its source in place, which may block another op's target.
        changed = True
        while changed:
            changed = False
            for op in operations:
                if op.is_terminal:
                    continue
                name = op.target_path.name
                if name in mappings or name.lower() == op.source_path.name.lower():
                    continue
                if (directory / name).exists():
                    op.mark(OperationStatus.SKIPPED, f"{constants.MSG_TARGET_EXISTS}: {name}")
                    self._emit(EventType.WARNING, f"Skipped ({constants.MSG_TARGET_EXISTS}): {op.source_path.name} → {name}")
                    del mappings[op.source_path.name]
                    changed = True

    def _perform_backup(self, directory: Path, operations, mappings: Dict[str, str]) -> bool:
        if self.dry_run or not self.backup_enabled or not mappings:
            return False
        if self.backup_manager is None:
            raise AutotitleError("backups are enabled but no backup manager is configured")

        self._emit(EventType.INFO, "Creating backup...")
        failures = self.backup_manager.backup(directory, mappings)
        for op in operations:
            err = failures.get(op.source_path.name)
            if err is not None and not op.is_terminal:
                op.mark(OperationStatus.FAILED, f"backup failed: {err}")
                self._emit(EventType.ERROR, f"Failed: {op.source_path.name}: backup failed: {err}")
                del mappings[op.source_path.name]
        if failures:
            # A source left in place by a failed snapshot blocks its name again.
            self._guard_existing_targets(directory, operations, mappings)
        return True

    def _commit_backup(self, directory: Path, operations: List[RenameOperation]) -> None:
        renamed = {
            op.source_path.name: op.target_path.name
            for op in operations
            if op.status == OperationStatus.SUCCESS
        }
        self.backup_manager.commit(directory, renamed)

    def _perform_renames(self, operations: List[RenameOperation]) -> None:
        if self.dry_run:
            return
        pending = [op for op in operations if not op.is_terminal]
        if not pending:
            return

        # Phase 1: move every source out of the way.
        staged = []
        for op in pending:
            temp = op.source_path.with_name(f"{constants.TEMP_NAME_PREFIX}{uuid.uuid4().hex[:8]}__{op.source_path.name}")
            try:
                os.rename(op.source_path, temp)
                staged.append((op, temp))
            except OSError as e:
                op.mark(OperationStatus.FAILED, str(e))
                self._emit(EventType.ERROR, f"Failed: {op.source_path.name}: {e}")

        # Phase 2: move into place.
        for op, temp in tqdm(staged, desc="Renaming files", disable=not self.progress):
            try:
                # A source that failed to stage still occupies its name.
                if op.target_path.exists():
                    raise FileExistsError(f"{constants.MSG_TARGET_EXISTS}: {op.target_path.name}")
                os.rename(temp, op.target_path)
            except OSError as e:
                try:
                    os.rename(temp, op.source_path)
                    op.mark(OperationStatus.FAILED, f"{e} (restored)")
                except OSError as e2:
                    op.mark(OperationStatus.FAILED, f"{e}; restore also failed: {e2}")
                self._emit(EventType.ERROR, f"Failed: {op.source_path.name}: {op.error}")
                continue
            op.mark(OperationStatus.SUCCESS)
            self._emit(EventType.SUCCESS, f"Renamed: {op.source_path.name} → {op.target_path.name}")

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError("rename cancelled")

    def _emit(self, event_type: EventType, message: str) -> None:
        log("rename.event", _EVENT_LEVELS[event_type], type=event_type.value, msg=message)
        if self.events is not None:
            self.events(Event(type=event_type, message=message))
