"""
Template-driven renaming of episode files.

Package organization:
- parser: Compiles filename templates into anchored matchers and guesses a
  template from an example filename.
- formatter: Builds an output filename from an ordered field list.
- core: The rename transaction engine (matching, offset mapping, collision
  handling, backup gate and the rename pass).
- batch: High-level entry points that load the map file, fetch metadata and
  run the engine for a directory; undo and clean helpers.

Public API (top-level exports)
- Parsing: `compile_template`, `CompiledMatcher`, `MatchResult`, `guess_pattern`.
- Formatting: `build_filename`, `TemplateVars`.
- Core renaming: `Renamer`, `calculate_auto_padding`, `resolve_offset`.
- Batch processing: `rename_directory`, `undo_directory`, `clean_directory`, `clean_all`.

Example:
    from autotitle.rename import compile_template
    compile_template("[{{ANY}}] {{SERIES}} - {{EP_NUM}}.{{EXT}}").match("[Subs] Show - 01.mkv")
    # {'Any': 'Subs', 'Series': 'Show', 'EpNum': '01', 'Ext': 'mkv'}
"""
from .parser import (
    CompiledMatcher,
    MatchResult,
    compile_template,
    guess_pattern,
)

from .formatter import (
    TemplateVars,
    build_filename,
)

from .core import (
    Renamer,
    calculate_auto_padding,
    resolve_offset,
)

from .batch import (
    clean_all,
    clean_directory,
    list_backups,
    rename_directory,
    undo_directory,
)

__all__ = [
    # Parsing
    "CompiledMatcher",
    "MatchResult",
    "compile_template",
    "guess_pattern",
    # Formatting
    "TemplateVars",
    "build_filename",
    # Core renaming
    "Renamer",
    "calculate_auto_padding",
    "resolve_offset",
    # Batch processing
    "rename_directory",
    "undo_directory",
    "clean_directory",
    "clean_all",
    "list_backups",
]
