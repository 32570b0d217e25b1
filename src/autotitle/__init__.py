"""
A media renaming toolkit driven by filename templates and episode metadata.

This package renames episode files in a directory by matching their current
names against user-authored templates, looking up canonical episode data, and
building new filenames from an output field list. Every destructive rename is
guarded by a per-directory backup that can be undone later.

The package is organized into several categories:
- Template compilation and filename generation (``autotitle.rename``).
- The rename transaction engine with collision handling (``autotitle.rename.core``).
- Backup, restore and the global backup registry (``autotitle.backup``).
- Configuration loading, metadata lookup and shared utilities.
"""

__version__ = "1.0.0"

# Debug flag for controlling verbose output
DEBUG: bool = False

__all__ = ["__version__", "DEBUG"]
