"""
Command line interface: rename episode files, undo, and manage backups.

    autotitle rename DIR [--dry-run] [--no-backup] [--offset N] [--config MAP]
    autotitle undo DIR
    autotitle clean DIR | --all
    autotitle backups
    autotitle init DIR --url URL [--pattern TEMPLATE ...]
"""

import argparse
import sys
from pathlib import Path

import autotitle as autotitle_module
from autotitle import config
from autotitle.errors import AutotitleError, ConfigNotFoundError
from autotitle.rename import batch, guess_pattern
from autotitle.utils import LogLevel, file_util, logger


def _cmd_rename(args) -> int:
    directory = Path(args.directory)
    if not directory.is_dir():
        logger.log("startup.error", LogLevel.ERROR, msg="Directory does not exist", dir=str(directory))
        return 1

    try:
        ops = batch.rename_directory(
            directory,
            map_file=args.config,
            dry_run=args.dry_run,
            no_backup=args.no_backup,
            offset=args.offset,
            progress=True,
        )
    except ConfigNotFoundError as e:
        logger.log("rename.error", LogLevel.ERROR, msg=str(e))
        logger.safe_print(f"Run 'autotitle init {directory} --url <MAL URL>' to create one.")
        return 1

    counts = batch.summarize(ops)
    logger.safe_print(
        f"\nSummary: renamed={counts['success']} pending={counts['pending']} "
        f"skipped={counts['skipped']} failed={counts['failed']}"
    )
    if args.dry_run:
        logger.safe_print("Dry-run mode: no changes were made.")
    return 0 if counts["failed"] == 0 else 1


def _cmd_undo(args) -> int:
    restored = batch.undo_directory(args.directory)
    logger.safe_print(f"Restored {restored} file(s) from backup")
    return 0


def _cmd_clean(args) -> int:
    if args.all:
        removed = batch.clean_all()
        logger.safe_print(f"Removed {removed} backup(s) globally")
        return 0
    if not args.directory:
        logger.log("clean.error", LogLevel.ERROR, msg="Specify a directory or use --all")
        return 1
    batch.clean_directory(args.directory)
    logger.safe_print(f"Removed backup: {args.directory}")
    return 0


def _cmd_backups(args) -> int:
    records = batch.list_backups()
    if not records:
        logger.safe_print("No backups registered.")
        return 0
    for record in records:
        logger.safe_print(f"{record.timestamp:%Y-%m-%d %H:%M:%S}  {record.source_dir}  ->  {record.path}")
    return 0


def _cmd_init(args) -> int:
    directory = Path(args.directory)
    if not directory.is_dir():
        logger.log("startup.error", LogLevel.ERROR, msg="Directory does not exist", dir=str(directory))
        return 1
    global_cfg = config.load_global()
    map_path = directory / global_cfg.map_file
    if map_path.exists() and not args.force:
        logger.log("init.error", LogLevel.ERROR, msg="Map file already exists (use --force)", path=str(map_path))
        return 1

    patterns = args.pattern
    if not patterns:
        sample = next(
            (p for p in sorted(directory.iterdir()) if p.is_file() and file_util.is_media_file(p, global_cfg.formats)),
            None,
        )
        if sample is not None:
            patterns = [guess_pattern(sample.name)]
            logger.log("init.guess", LogLevel.INFO, sample=sample.name, pattern=patterns[0])

    cfg = config.generate_default(
        args.url,
        filler_url=args.filler_url or "",
        input_patterns=patterns,
        separator=args.separator or "",
        offset=args.offset,
        padding=args.padding,
    )
    config.save(map_path, cfg)
    logger.safe_print(f"Wrote {map_path}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autotitle", description="Rename media files with proper episode titles")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {autotitle_module.__version__}")
    subparsers = parser.add_subparsers(dest="command")

    p = subparsers.add_parser("rename", help="Rename files in a directory using its map file")
    p.add_argument("directory", help="Directory containing the episode files")
    p.add_argument("--dry-run", "-d", action="store_true", help="Preview changes without applying")
    p.add_argument("--no-backup", "-n", action="store_true", help="Skip backup creation")
    p.add_argument(
        "--offset", "-o", type=int, default=None,
        help="Shift episode numbers (DB = local + offset); overrides the map file",
    )
    p.add_argument("--config", "-c", help="Explicit map file path")
    p.set_defaults(func=_cmd_rename)

    p = subparsers.add_parser("undo", help="Restore original filenames from backup")
    p.add_argument("directory")
    p.set_defaults(func=_cmd_undo)

    p = subparsers.add_parser("clean", help="Remove a directory's backup (or all with --all)")
    p.add_argument("directory", nargs="?")
    p.add_argument("--all", "-a", action="store_true", help="Remove all backups globally")
    p.set_defaults(func=_cmd_clean)

    p = subparsers.add_parser("backups", help="List registered backups")
    p.set_defaults(func=_cmd_backups)

    p = subparsers.add_parser("init", help="Create a map file for a directory")
    p.add_argument("directory")
    p.add_argument("--url", required=True, help="MyAnimeList anime URL")
    p.add_argument("--filler-url", help="AnimeFillerList show URL used to mark filler episodes")
    p.add_argument("--pattern", action="append", help="Input template (repeatable); guessed when omitted")
    p.add_argument("--separator", help="Output separator (default ' - ')")
    p.add_argument("--offset", type=int, default=0)
    p.add_argument("--padding", type=int, default=0, help="Episode number padding (0 = auto)")
    p.add_argument("--force", "-f", action="store_true", help="Overwrite an existing map file")
    p.set_defaults(func=_cmd_init)

    return parser


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.debug:
        autotitle_module.DEBUG = True
        logger.set_log_level(LogLevel.DEBUG)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except AutotitleError as e:
        logger.log(f"{args.command}.error", LogLevel.ERROR, msg=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
