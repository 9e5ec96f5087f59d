import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import MovieCatalogApp, ScanResult
from .exceptions import MovieCatalogError
from .metadata import nfo
from .models import NfoData
from .organization.duplicates import KeepStrategy
from .reporting import ReportGenerator

# Fields editable from the command line; list fields take comma-separated values
SCALAR_FIELDS = set(nfo.SCALAR_TAGS) | {'poster', 'fanart'}
LIST_FIELDS = set(nfo.LIST_TAGS.values())


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("pymediainfo").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(prog="movie-catalog", description="Movie Catalog: scan, group and de-duplicate a video library")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("--cache-db", type=Path, default=None,
                   help=f"SQLite file holding the directory cache (e.g. {config.DEFAULT_CACHE_DB})")
    p.add_argument("--snapshot", type=Path, default=None,
                   help=f"Scan-result cache JSON written after a complete scan (e.g. {config.DEFAULT_SNAPSHOT})")
    p.add_argument("--workers", type=int, default=config.DIR_PARALLEL, help="Directories listed in parallel")

    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan roots and list movies")
    scan.add_argument("roots", nargs="+", help="Library root directories")
    scan.add_argument("--probe", action="store_true", help="Read technical metadata (resolution, codecs)")
    scan.add_argument("--report", type=Path, default=None, help="Write a CSV library listing")

    dupes = sub.add_parser("dupes", help="Find duplicate copies")
    dupes.add_argument("roots", nargs="+", help="Library root directories")
    dupes.add_argument("--strategy", choices=[s.value for s in KeepStrategy],
                       default=KeepStrategy.HIGHER_RESOLUTION.value, help="Which copy to keep")
    dupes.add_argument("--report", type=Path, default=None, help="Write the duplicate plan as CSV")
    dupes.add_argument("--delete", action="store_true", help="Delete every copy except the one kept")
    dupes.add_argument("--dry-run", action="store_true", help="With --delete, only log what would be deleted")

    nfo_cmd = sub.add_parser("nfo", help="Read or edit an NFO sidecar")
    nfo_sub = nfo_cmd.add_subparsers(dest="nfo_command", required=True)
    show = nfo_sub.add_parser("show", help="Print the fields of an NFO file")
    show.add_argument("path", type=Path)
    edit = nfo_sub.add_parser("set", help="Change one field and save (keeps a .bak copy)")
    edit.add_argument("path", type=Path)
    edit.add_argument("field", help="e.g. title, year, plot, genres")
    edit.add_argument("value")

    return p.parse_args(argv)


def run_scan(app: MovieCatalogApp, args, probe: bool) -> ScanResult:
    if args.snapshot:
        previous = app.load_snapshot(args.snapshot)
        if previous is not None:
            logging.info(f"Previous scan listed {len(previous)} videos.")

    result = app.scan(args.roots)
    if result.stats.cache_hits and not result.superseded:
        app.refresh_sizes(result.files)

    if probe and result.files:
        if not app.extractor.probe_available():
            logging.warning("No metadata probe available (install MediaInfo or ffprobe).")
        else:
            app.probe_metadata(result.files)

    if not result.superseded:
        if args.snapshot:
            app.save_snapshot(args.snapshot, result.files)
        if args.cache_db:
            app.save_dir_cache(args.cache_db)
    return result


def cmd_scan(app: MovieCatalogApp, args) -> int:
    result = run_scan(app, args, probe=args.probe)
    groups = result.groups

    for group in groups:
        parts = f" ({group.part_count} parts)" if group.part_count > 1 else ""
        marker = "" if group.nfo_path else "  [no nfo]"
        print(f"{group.base_name}{parts}  {group.dir_path}{marker}")

    if args.report:
        posters = {g.key: app.find_poster(g) for g in groups}
        ReportGenerator().generate_library_report(groups, args.report, posters)

    print(f"{len(groups)} movies, {len(result.files)} files")
    return 0


def cmd_dupes(app: MovieCatalogApp, args) -> int:
    strategy = KeepStrategy(args.strategy)
    # Quality comparison needs technical metadata
    result = run_scan(app, args, probe=True)
    clusters = app.find_duplicates(result.files)

    for cluster in clusters:
        keep = cluster.best(strategy)
        print(f"{cluster.label}:")
        for vf in cluster.files:
            print(f"  {'KEEP  ' if vf is keep else 'DELETE'} {vf.path}")

    if args.report:
        ReportGenerator().generate_duplicate_report(clusters, args.report, strategy)

    if args.delete:
        report = app.delete_duplicates(clusters, strategy, dry_run=args.dry_run)
        if report.failed:
            return 1
    return 0


def print_nfo(data: NfoData):
    for name in nfo.SCALAR_TAGS:
        value = getattr(data, name)
        if value:
            print(f"{name}: {value}")
    for name in sorted(LIST_FIELDS):
        values = getattr(data, name)
        if values:
            print(f"{name}: {', '.join(values)}")
    for actor in data.actors:
        print(f"actor: {actor.name}" + (f" as {actor.role}" if actor.role else ""))
    for rating in data.ratings:
        print(f"rating: {rating.name} {rating.value}/{rating.max} ({rating.votes} votes)")
    for id_type, value in data.uniqueids.items():
        print(f"uniqueid[{id_type}]: {value}")
    if data.poster:
        print(f"poster: {data.poster}")
    if data.fanart:
        print(f"fanart: {data.fanart}")


def set_field(data: NfoData, field: str, value: str):
    if field in LIST_FIELDS:
        setattr(data, field, [v.strip() for v in value.split(',') if v.strip()])
    elif field in SCALAR_FIELDS:
        setattr(data, field, value)
    else:
        raise ValueError(f"Unknown or non-editable field: {field}")


def cmd_nfo(app: MovieCatalogApp, args) -> int:
    if args.nfo_command == "show":
        loaded = app.read_metadata(str(args.path))
        if loaded.data is None:
            logging.error(f"Cannot read {args.path}: {loaded.error}")
            return 1
        print_nfo(loaded.data)
        return 0

    if args.path.exists():
        loaded = app.read_metadata(str(args.path))
        if loaded.data is None:
            logging.error(f"Refusing to overwrite unreadable NFO {args.path}: {loaded.error}")
            return 1
        data = loaded.data
    else:
        data = nfo.create_empty_nfo()

    try:
        set_field(data, args.field, args.value)
    except ValueError as e:
        logging.error(str(e))
        return 2

    result = app.save_metadata(str(args.path), data)
    return 0 if result.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    app = MovieCatalogApp(max_workers=args.workers, show_progress=True)

    try:
        if args.command in ("scan", "dupes") and args.cache_db and args.cache_db.exists():
            app.load_dir_cache(args.cache_db)

        if args.command == "scan":
            return cmd_scan(app, args)
        if args.command == "dupes":
            return cmd_dupes(app, args)
        return cmd_nfo(app, args)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except MovieCatalogError as e:
        logging.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
