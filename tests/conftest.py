"""
Shared pytest fixtures for the autotitle test suite.

Every test runs with the backup registry and the global config search path
pointed into its own temporary directory, so nothing touches the user's
``~/.cache`` or ``~/.config``.
"""

import os
import sys

# Add src/ to sys.path so 'autotitle' imports without an installed package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import pytest

from autotitle.backup import BackupManager, JsonFileRegistry
from autotitle.config import OutputSpec, Pattern, Target
from autotitle.models import Episode, Media
from autotitle.utils import constants


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Redirect the cache root and global config locations into tmp_path."""
    cache_root = tmp_path / "_cache"
    monkeypatch.setattr(constants, "CACHE_ROOT", cache_root)
    monkeypatch.setattr(constants, "GLOBAL_CONFIG_DIRS", [tmp_path / "_config"])
    return cache_root


@pytest.fixture
def media_dir(tmp_path):
    directory = tmp_path / "show"
    directory.mkdir()
    return directory


@pytest.fixture
def registry(tmp_path):
    return JsonFileRegistry(tmp_path / "_cache" / constants.REGISTRY_FILE_NAME)


@pytest.fixture
def backup_manager(registry):
    return BackupManager(registry)


def make_media(count=12, fillers=(), title="My Show", title_en="", title_jp=""):
    """Media with episodes 1..count titled 'Title N'."""
    episodes = [Episode(number=n, title=f"Title {n}", is_filler=n in fillers) for n in range(1, count + 1)]
    return Media(
        title=title,
        title_en=title_en,
        title_jp=title_jp,
        id="1",
        provider="mal",
        episode_count=count,
        episodes=episodes,
    )


def make_target(inputs, fields=("E", "+", "EP_NUM", "FILLER", "EP_NAME"), separator=" - ", offset=0, padding=0):
    return Target(
        path=".",
        url="https://myanimelist.net/anime/1",
        patterns=[Pattern(
            input=list(inputs),
            output=OutputSpec(fields=list(fields), separator=separator, offset=offset, padding=padding),
        )],
    )


@pytest.fixture
def media():
    return make_media()


@pytest.fixture
def touch():
    """Create empty (or given-content) files inside a directory."""

    def _touch(directory, *names, content=None):
        for name in names:
            (directory / name).write_text(content if content is not None else name)
        return [directory / n for n in names]

    return _touch
