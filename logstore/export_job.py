# logstore/export_job.py
"""
Out-of-band export of every stored record to disk.

Usage:
  logstore-export [--database-url URL] [--format json|csv] [--output-dir DIR]

Env vars (flags take precedence):
- DATABASE_URL (see logstore.db)
- FORMAT json|csv (default: json; csv is reserved and currently writes json)
- OUTPUT_DIR (default: ./exports)

Artifacts, for <date> = YYYY-MM-DD (UTC):
  all-data-<date>.json        every record as one indented array
  all-data-<date>.ndjson      one record per line
  by-session/<sessionId>.json each session's records, oldest first

Statistics are printed to stdout. Exit status is 0 on success (an empty store
writes nothing) and 1 if the store could not be read or artifacts not written.
"""
import argparse
import json
import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from logstore import db as dbmod
from logstore import monitoring
from logstore.errors import OperationCancelled, PersistenceError
from logstore.exporter import ExportBundle, ExportEngine
from logstore.store import RecordStore

FORMAT = os.getenv("FORMAT", "json")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "./exports")

SUPPORTED_FORMATS = ("json", "csv")


def _write_text(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")


def _session_filename(session_id: str) -> str:
    safe = session_id.replace("/", "_").replace("\\", "_").replace("..", "_")
    return f"{safe}.json"


def write_artifacts(bundle: ExportBundle, output_dir: Path, date_stamp: str) -> List[Path]:
    """Write the three export artifacts; returns the paths written.

    Everything is staged in a hidden directory under ``output_dir`` and only
    moved into place once every file was written, so a failed run leaves no
    artifacts behind.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    json_name = f"all-data-{date_stamp}.json"
    ndjson_name = f"all-data-{date_stamp}.ndjson"

    with tempfile.TemporaryDirectory(dir=output_dir, prefix=".export-") as staging_name:
        staging = Path(staging_name)
        _write_text(staging / json_name, json.dumps(bundle.as_array, indent=2, ensure_ascii=False))
        _write_text(staging / ndjson_name, "".join(line + "\n" for line in bundle.as_lines))
        (staging / "by-session").mkdir()
        session_names = []
        for session_id, entries in bundle.by_session.items():
            name = _session_filename(session_id)
            _write_text(staging / "by-session" / name, json.dumps(entries, indent=2, ensure_ascii=False))
            session_names.append(name)

        session_dir = output_dir / "by-session"
        session_dir.mkdir(exist_ok=True)
        written: List[Path] = []
        for rel in [json_name, ndjson_name] + [f"by-session/{n}" for n in session_names]:
            target = output_dir / rel
            os.replace(staging / rel, target)
            written.append(target)

    print(f"Exported {len(bundle.as_array)} records to {output_dir / json_name}")
    print(f"Exported {len(bundle.as_lines)} records to {output_dir / ndjson_name}")
    print(f"Exported {len(bundle.by_session)} sessions to {session_dir}")
    return written


def run_export(store: RecordStore, output_dir: str, fmt: str = "json", today: Optional[datetime] = None) -> int:
    if fmt == "csv":
        monitoring.logger.warning("CSV export is not implemented; writing JSON artifacts")

    try:
        store.init_schema()
        print("Fetching all logs...")
        bundle = ExportEngine(store).export_all()
    except (PersistenceError, OperationCancelled) as e:
        monitoring.logger.error("Export failed", extra={"error": str(e)})
        print(f"Error exporting data: {e}", file=sys.stderr)
        return 1

    print(bundle.statistics.render())

    if bundle.statistics.total_records == 0:
        print("No data found in database")
        return 0

    date_stamp = (today or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    try:
        write_artifacts(bundle, Path(output_dir), date_stamp)
    except OSError as e:
        monitoring.logger.error("Writing export artifacts failed", extra={"error": str(e)})
        print(f"Error writing export: {e}", file=sys.stderr)
        return 1

    print("Export completed successfully!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export every stored log record")
    parser.add_argument("--database-url", default=None, help="Store connection string (default: $DATABASE_URL)")
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, default=None, help="Output format (default: $FORMAT)")
    parser.add_argument("--output-dir", default=None, help="Output directory (default: $OUTPUT_DIR)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    url = args.database_url or dbmod.DATABASE_URL
    fmt = args.format or FORMAT
    if fmt not in SUPPORTED_FORMATS:
        print(f"Unsupported FORMAT {fmt!r}; expected one of {', '.join(SUPPORTED_FORMATS)}", file=sys.stderr)
        return 1

    print("Connecting to the store...")
    store = RecordStore.from_url(url)
    try:
        return run_export(store, args.output_dir or OUTPUT_DIR, fmt=fmt)
    finally:
        store.close()
        print("Store connection closed")


if __name__ == "__main__":
    sys.exit(main())
