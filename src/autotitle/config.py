"""
Loading, validating and saving autotitle configuration.

Two YAML documents are involved:

- The per-directory *map file* (``_autotitle.yml`` by default) lists rename
  targets. Each target names a directory, a metadata URL, and one or more
  pattern groups: input templates plus an output field list.
- The optional *global config* (``~/.config/autotitle/config.yml`` or
  ``/etc/autotitle/config.yml``) overrides defaults such as the accepted media
  formats, the map file name, API pacing and backup behaviour.

Example map file::

    targets:
      - path: .
        url: https://myanimelist.net/anime/21
        patterns:
          - input: ["[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}"]
            output:
              fields: [SERIES, EP_NUM, FILLER, EP_NAME]
              separator: " - "
              offset: 0
              padding: 0
"""
import copy
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

import yaml

from autotitle.errors import ConfigInvalidError, ConfigNotFoundError
from autotitle.utils import constants


@dataclass
class OutputSpec:
    """Output field list, separator, episode offset and padding (0 = auto)."""

    fields: List[str] = field(default_factory=list)
    separator: str = " - "
    offset: int = 0
    padding: int = 0


@dataclass
class Pattern:
    """Input templates sharing one output spec."""

    input: List[str] = field(default_factory=list)
    output: OutputSpec = field(default_factory=OutputSpec)


@dataclass
class Target:
    path: str
    url: str = ""
    filler_url: str = ""
    patterns: List[Pattern] = field(default_factory=list)


@dataclass
class Config:
    """A parsed map file. ``base_dir`` is the directory the file was read from."""

    targets: List[Target] = field(default_factory=list)
    base_dir: Path = field(default_factory=Path.cwd)

    def resolve_target(self, path) -> Target:
        """
        Find the target whose path resolves to ``path``.

        Relative target paths are resolved against ``base_dir`` (the map file's
        directory), so ``path: .`` addresses the directory holding the map file.

        Raises:
            ConfigInvalidError: when no target matches.
        """
        wanted = Path(path).resolve()
        for target in self.targets:
            target_path = Path(target.path)
            if not target_path.is_absolute():
                target_path = self.base_dir / target_path
            if target_path.resolve() == wanted:
                return target
        raise ConfigInvalidError(self.base_dir, f"no target found for path: {path}")


@dataclass
class ApiConfig:
    rate_limit: float = constants.DEFAULT_RATE_LIMIT
    timeout: int = constants.DEFAULT_TIMEOUT


@dataclass
class BackupConfig:
    enabled: bool = True
    dir_name: str = constants.DEFAULT_BACKUP_DIR_NAME


@dataclass
class GlobalConfig:
    map_file: str = constants.DEFAULT_MAP_FILE
    formats: List[str] = field(default_factory=lambda: list(constants.DEFAULT_FORMATS))
    patterns: List[Pattern] = field(default_factory=list)
    api: ApiConfig = field(default_factory=ApiConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)


DEFAULT_PATTERNS = [
    Pattern(
        input=["{{EP_NUM}}.{{EXT}}", "Episode {{EP_NUM}}.{{EXT}}", "E{{EP_NUM}}.{{EXT}}"],
        output=OutputSpec(fields=["E", "+", "EP_NUM", "FILLER", "EP_NAME"], separator=" - "),
    )
]


def _parse_output(data, where: str, path) -> OutputSpec:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigInvalidError(path, f"{where}: output must be a mapping")
    try:
        return OutputSpec(
            fields=[str(f) for f in (data.get("fields") or [])],
            separator=str(data.get("separator", " - ")),
            offset=int(data.get("offset") or 0),
            padding=int(data.get("padding") or 0),
        )
    except (TypeError, ValueError) as e:
        raise ConfigInvalidError(path, f"{where}: {e}")


def _parse_patterns(items, where: str, path) -> List[Pattern]:
    patterns = []
    for j, item in enumerate(items or []):
        if not isinstance(item, dict):
            raise ConfigInvalidError(path, f"{where}, pattern {j}: must be a mapping")
        inputs = item.get("input") or []
        if isinstance(inputs, str):
            inputs = [inputs]
        patterns.append(Pattern(
            input=[str(i) for i in inputs],
            output=_parse_output(item.get("output"), f"{where}, pattern {j}", path),
        ))
    return patterns


def validate(cfg: Config, path="<memory>") -> None:
    """Check that a map file has usable targets and patterns."""
    if not cfg.targets:
        raise ConfigInvalidError(path, "config must have at least one target")

    for i, target in enumerate(cfg.targets):
        if not target.path:
            raise ConfigInvalidError(path, f"target {i}: path is required")
        if not target.url:
            raise ConfigInvalidError(path, f"target {i}: url is required")
        if not target.patterns:
            raise ConfigInvalidError(path, f"target {i}: at least one pattern is required")
        for j, pattern in enumerate(target.patterns):
            if not pattern.input:
                raise ConfigInvalidError(path, f"target {i}, pattern {j}: at least one input pattern is required")
            if not pattern.output.fields:
                raise ConfigInvalidError(path, f"target {i}, pattern {j}: output fields are required")


def load_file(path) -> Config:
    """Load, validate and return a map file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigNotFoundError(path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigInvalidError(path, f"failed to parse map file: {e}")

    if not isinstance(data, dict):
        raise ConfigInvalidError(path, "top level must be a mapping")

    targets = []
    for i, item in enumerate(data.get("targets") or []):
        if not isinstance(item, dict):
            raise ConfigInvalidError(path, f"target {i}: must be a mapping")
        targets.append(Target(
            path=str(item.get("path") or ""),
            url=str(item.get("url") or ""),
            filler_url=str(item.get("filler_url") or ""),
            patterns=_parse_patterns(item.get("patterns"), f"target {i}", path),
        ))

    cfg = Config(targets=targets, base_dir=path.resolve().parent)
    validate(cfg, path)
    return cfg


def _swap_yaml_extension(path: Path) -> Path:
    if path.suffix == ".yml":
        return path.with_suffix(".yaml")
    if path.suffix == ".yaml":
        return path.with_suffix(".yml")
    return path


def load_map(directory, map_file: Optional[str] = None) -> Config:
    """
    Load the map file for ``directory``.

    Tries ``map_file`` (global default when omitted) first, then the same name
    with the other YAML extension.
    """
    name = map_file or load_global().map_file
    primary = Path(directory) / name
    for candidate in (primary, _swap_yaml_extension(primary)):
        if candidate.is_file():
            return load_file(candidate)
    raise ConfigNotFoundError(primary)


def find_global_config() -> Optional[Path]:
    for base in constants.GLOBAL_CONFIG_DIRS:
        for name in constants.GLOBAL_CONFIG_NAMES:
            candidate = base / name
            if candidate.is_file():
                return candidate
    return None


def load_global(path=None) -> GlobalConfig:
    """
    Return the global configuration, overlaying a config file on the defaults.

    When ``path`` is omitted the standard locations are searched; defaults are
    returned when no file exists.
    """
    cfg = GlobalConfig(patterns=copy.deepcopy(DEFAULT_PATTERNS))
    config_path = Path(path) if path else find_global_config()
    if config_path is None:
        return cfg
    if not config_path.is_file():
        raise ConfigNotFoundError(config_path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigInvalidError(config_path, f"failed to parse global config: {e}")
    if not isinstance(data, dict):
        raise ConfigInvalidError(config_path, "top level must be a mapping")

    if data.get("map_file"):
        cfg.map_file = str(data["map_file"])
    if data.get("formats"):
        cfg.formats = [str(f).lower().lstrip(".") for f in data["formats"]]
    if data.get("patterns"):
        cfg.patterns = _parse_patterns(data["patterns"], "global", config_path)

    api = data.get("api") or {}
    cfg.api = ApiConfig(
        rate_limit=float(api.get("rate_limit", cfg.api.rate_limit)),
        timeout=int(api.get("timeout", cfg.api.timeout)),
    )
    backup = data.get("backup") or {}
    cfg.backup = BackupConfig(
        enabled=bool(backup.get("enabled", cfg.backup.enabled)),
        dir_name=str(backup.get("dir_name") or cfg.backup.dir_name),
    )
    return cfg


def generate_default(
        url: str,
        filler_url: str = "",
        input_patterns: Optional[List[str]] = None,
        separator: str = "",
        offset: int = 0,
        padding: int = 0,
) -> Config:
    """Build a single-target map file for the current directory from the default pattern."""
    default = DEFAULT_PATTERNS[0]
    return Config(targets=[
        Target(
            path=".",
            url=url,
            filler_url=filler_url,
            patterns=[Pattern(
                input=list(input_patterns or default.input),
                output=OutputSpec(
                    fields=list(default.output.fields),
                    separator=separator or default.output.separator,
                    offset=offset,
                    padding=padding,
                ),
            )],
        )
    ])


def save(path, cfg: Config) -> None:
    """Write a map file as YAML (``base_dir`` is not persisted)."""
    data = {"targets": []}
    for target in cfg.targets:
        item = asdict(target)
        if not item["filler_url"]:
            del item["filler_url"]
        data["targets"].append(item)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
