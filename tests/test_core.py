"""
Tests for the rename engine: matching, offsets, padding, collisions, the
existing-target guard, the backup gate and the two-phase rename pass.
"""

import threading

import pytest

from conftest import make_media, make_target

from autotitle.config import OutputSpec, Pattern, Target
from autotitle.errors import AutotitleError, NoValidPatternsError, OperationCancelledError
from autotitle.models import Episode, EventType, Media, OperationStatus
from autotitle.rename import batch
from autotitle.rename.core import Renamer, calculate_auto_padding, resolve_offset
from autotitle.utils import constants


def names(directory):
    return sorted(p.name for p in directory.iterdir() if p.is_file())


class TestHelpers:

    def test_auto_padding_uses_highest_episode(self):
        assert calculate_auto_padding(make_media(count=11)) == 2
        assert calculate_auto_padding(make_media(count=120)) == 3

    def test_auto_padding_never_below_two(self):
        assert calculate_auto_padding(make_media(count=5)) == 2

    def test_auto_padding_uses_declared_episode_count(self):
        media = Media(title="Show", episode_count=1000, episodes=[Episode(number=1)])
        assert calculate_auto_padding(media) == 4

    def test_override_beats_pattern_offset(self):
        pattern = Pattern(input=["x"], output=OutputSpec(fields=["EP_NUM"], offset=10))
        assert resolve_offset(None, pattern) == 10
        assert resolve_offset(0, pattern) == 0
        assert resolve_offset(-2, pattern) == -2
        assert resolve_offset(None, None) == 0


class TestRenamer:

    def test_renames_with_auto_padding(self, media_dir, backup_manager, touch):
        """Test that 11 episodes pad to two digits."""
        touch(media_dir, "Episode 7.mkv")
        renamer = Renamer(backup_manager=backup_manager)

        ops = renamer.execute(media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media(count=11))

        assert [op.status for op in ops] == [OperationStatus.SUCCESS]
        assert names(media_dir) == ["E07 - Title 7.mkv"]
        assert (media_dir / "E07 - Title 7.mkv").read_text() == "Episode 7.mkv"

    def test_explicit_padding_wins(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 7.mkv")
        target = make_target(["Episode {{EP_NUM}}.{{EXT}}"], padding=3)

        Renamer(backup_manager=backup_manager).execute(media_dir, target, make_media(count=11))

        assert names(media_dir) == ["E007 - Title 7.mkv"]

    def test_filler_marker(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 3.mkv")

        Renamer(backup_manager=backup_manager).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media(fillers=(3,))
        )

        assert names(media_dir) == ["E03 - [F] - Title 3.mkv"]

    def test_metadata_titles_are_sanitized(self, media_dir, backup_manager, touch):
        touch(media_dir, "01.mkv")
        media = Media(title="Show: Part/2", episode_count=1, episodes=[Episode(number=1, title="Why?")])
        target = make_target(["{{EP_NUM}}.{{EXT}}"], fields=["SERIES", "EP_NUM", "EP_NAME"])

        Renamer(backup_manager=backup_manager).execute(media_dir, target, media)

        assert names(media_dir) == ["Show Part2 - 01 - Why.mkv"]

    def test_configured_offset(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        target = make_target(["Episode {{EP_NUM}}.{{EXT}}"], offset=10)

        Renamer(backup_manager=backup_manager).execute(media_dir, target, make_media(count=12))

        assert names(media_dir) == ["E11 - Title 11.mkv"]

    def test_explicit_zero_offset_overrides_configured(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        target = make_target(["Episode {{EP_NUM}}.{{EXT}}"], offset=10)

        Renamer(backup_manager=backup_manager, offset=0).execute(media_dir, target, make_media(count=12))

        assert names(media_dir) == ["E01 - Title 1.mkv"]

    def test_missing_episode_is_reported(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 5.mkv")
        events = []
        target = make_target(["Episode {{EP_NUM}}.{{EXT}}"], offset=10)

        ops = Renamer(backup_manager=backup_manager, events=events.append).execute(
            media_dir, target, make_media(count=12)
        )

        assert ops == []
        assert names(media_dir) == ["Episode 5.mkv"]
        warnings = [e.message for e in events if e.type is EventType.WARNING]
        assert warnings == ["Episode 5 (mapped to 15) not found in database (Episode 5.mkv)"]

    def test_unmatched_and_non_media_files(self, media_dir, backup_manager, touch):
        """Test that unmatched media files warn and non-media files are ignored silently."""
        touch(media_dir, "random.mkv", "notes.txt")
        events = []

        ops = Renamer(backup_manager=backup_manager, events=events.append).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        assert ops == []
        assert [e.message for e in events] == ["No pattern matched: random.mkv"]
        assert names(media_dir) == ["notes.txt", "random.mkv"]

    def test_first_matching_pattern_wins(self, media_dir, backup_manager, touch):
        touch(media_dir, "05.mkv")
        target = Target(
            path=".",
            url="https://myanimelist.net/anime/1",
            patterns=[
                Pattern(input=["{{EP_NUM}}.{{EXT}}"], output=OutputSpec(fields=["A", "+", "EP_NUM"])),
                Pattern(input=["{{ANY}}{{EP_NUM}}.{{EXT}}"], output=OutputSpec(fields=["B", "+", "EP_NUM"])),
            ],
        )

        Renamer(backup_manager=backup_manager).execute(media_dir, target, make_media())

        assert names(media_dir) == ["A05.mkv"]

    def test_collision_first_file_wins(self, media_dir, backup_manager, touch):
        """Test that the lexically first file claims a shared target and the other is skipped."""
        touch(media_dir, "[Group] Show - 01.mkv", "[Other] Show - 01.mkv")
        events = []
        target = make_target(["[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}"])

        ops = Renamer(backup_manager=backup_manager, events=events.append).execute(media_dir, target, make_media())

        winner, loser = ops
        assert winner.source_path.name == "[Group] Show - 01.mkv"
        assert winner.status is OperationStatus.SUCCESS
        assert loser.status is OperationStatus.SKIPPED
        assert loser.error.startswith(constants.MSG_COLLISION)
        assert names(media_dir) == ["E01 - Title 1.mkv", "[Other] Show - 01.mkv"]
        assert (media_dir / "E01 - Title 1.mkv").read_text() == "[Group] Show - 01.mkv"
        assert any(e.type is EventType.WARNING and "Collision" in e.message for e in events)

    def test_second_run_is_a_no_op(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv", "Episode 2.mkv")
        target = make_target(["Episode {{EP_NUM}}.{{EXT}}", "E{{EP_NUM}} - {{EP_NAME}}.{{EXT}}"])
        renamer = Renamer(backup_manager=backup_manager)

        renamer.execute(media_dir, target, make_media())
        first = names(media_dir)
        ops = renamer.execute(media_dir, target, make_media())

        assert names(media_dir) == first == ["E01 - Title 1.mkv", "E02 - Title 2.mkv"]
        assert all(op.status is OperationStatus.SKIPPED for op in ops)
        assert all(op.error == constants.MSG_UNCHANGED for op in ops)

    def test_dry_run_touches_nothing(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        events = []

        ops = Renamer(backup_manager=backup_manager, dry_run=True, events=events.append).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        assert [op.status for op in ops] == [OperationStatus.PENDING]
        assert ops[0].target_path.name == "E01 - Title 1.mkv"
        assert names(media_dir) == ["Episode 1.mkv"]
        assert not (media_dir / constants.DEFAULT_BACKUP_DIR_NAME).exists()
        assert [e.message for e in events] == ["[DRY-RUN] Episode 1.mkv → E01 - Title 1.mkv"]

    def test_no_valid_patterns(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        with pytest.raises(NoValidPatternsError):
            Renamer(backup_manager=backup_manager).execute(media_dir, make_target([""]), make_media())

    def test_target_without_templates(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        with pytest.raises(NoValidPatternsError):
            Renamer(backup_manager=backup_manager).execute(media_dir, make_target([]), make_media())
        assert names(media_dir) == ["Episode 1.mkv"]

    def test_invalid_pattern_is_reported_but_others_run(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        events = []

        Renamer(backup_manager=backup_manager, events=events.append).execute(
            media_dir, make_target([".{{EXT}}", "Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        assert names(media_dir) == ["E01 - Title 1.mkv"]
        assert events[0].type is EventType.WARNING
        assert events[0].message.startswith("Invalid pattern '.{{EXT}}'")

    def test_backup_is_created_before_renaming(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")

        Renamer(backup_manager=backup_manager).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        backup_dir = media_dir / constants.DEFAULT_BACKUP_DIR_NAME
        assert (backup_dir / "Episode 1.mkv").read_text() == "Episode 1.mkv"
        assert backup_manager.read_mappings(media_dir) == {"Episode 1.mkv": "E01 - Title 1.mkv"}

    def test_backup_enabled_without_manager_aborts(self, media_dir, touch):
        touch(media_dir, "Episode 1.mkv")
        with pytest.raises(AutotitleError):
            Renamer().execute(media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media())
        assert names(media_dir) == ["Episode 1.mkv"]

    def test_backup_disabled(self, media_dir, touch):
        touch(media_dir, "Episode 1.mkv")

        Renamer(backup_enabled=False).execute(media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media())

        assert names(media_dir) == ["E01 - Title 1.mkv"]
        assert not (media_dir / constants.DEFAULT_BACKUP_DIR_NAME).exists()

    def test_file_without_backup_is_not_renamed(self, media_dir, backup_manager, touch, monkeypatch):
        """Test that a per-file backup failure fails only that operation."""
        touch(media_dir, "Episode 1.mkv", "Episode 2.mkv")
        from autotitle.backup import manager as manager_module
        real_copy = manager_module.copy_file

        def flaky_copy(src, dst):
            if src.name == "Episode 2.mkv":
                raise OSError("disk full")
            return real_copy(src, dst)

        monkeypatch.setattr(manager_module, "copy_file", flaky_copy)

        ops = Renamer(backup_manager=backup_manager).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        assert [op.status for op in ops] == [OperationStatus.SUCCESS, OperationStatus.FAILED]
        assert "backup failed" in ops[1].error
        assert names(media_dir) == ["E01 - Title 1.mkv", "Episode 2.mkv"]

    def test_chained_renames_do_not_clobber(self, media_dir, backup_manager, touch):
        """Test that 1->2 and 2->3 in one batch keep both files."""
        touch(media_dir, "1.mkv", "2.mkv")
        target = make_target(["{{EP_NUM}}.{{EXT}}"], fields=["EP_NUM"], offset=1, padding=1)

        ops = Renamer(backup_manager=backup_manager).execute(media_dir, target, make_media())

        assert all(op.status is OperationStatus.SUCCESS for op in ops)
        assert names(media_dir) == ["2.mkv", "3.mkv"]
        assert (media_dir / "2.mkv").read_text() == "1.mkv"
        assert (media_dir / "3.mkv").read_text() == "2.mkv"

    def test_existing_target_is_not_overwritten(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv", "E01 - Title 1.mkv")

        ops = Renamer(backup_manager=backup_manager).execute(
            media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media()
        )

        assert [op.status for op in ops] == [OperationStatus.SKIPPED]
        assert ops[0].error.startswith(constants.MSG_TARGET_EXISTS)
        assert (media_dir / "E01 - Title 1.mkv").read_text() == "E01 - Title 1.mkv"
        assert (media_dir / "Episode 1.mkv").exists()

    def test_cancel_before_rename(self, media_dir, backup_manager, touch):
        touch(media_dir, "Episode 1.mkv")
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            Renamer(backup_manager=backup_manager).execute(
                media_dir, make_target(["Episode {{EP_NUM}}.{{EXT}}"]), make_media(), cancel=cancel
            )

        assert names(media_dir) == ["Episode 1.mkv"]

    def test_summarize(self, media_dir, backup_manager, touch):
        touch(media_dir, "[Group] Show - 01.mkv", "[Other] Show - 01.mkv", "[Group] Show - 02.mkv")
        target = make_target(["[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}"])

        ops = Renamer(backup_manager=backup_manager).execute(media_dir, target, make_media())

        assert batch.summarize(ops) == {"pending": 0, "success": 2, "skipped": 1, "failed": 0}
