from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from review_tracker.config import get_settings
from review_tracker.db.store import JsonFileStore
from review_tracker.errors import NotFound, RefreshInProgress, ValidationError
from review_tracker.services.import_service import dumps_export, import_records, loads_import
from review_tracker.services.ingest_service import RefreshResult, ReviewIngestService
from review_tracker.services.normalize import normalize

from .spiders import EXTRACTORS, select_extractor

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _report(result: RefreshResult) -> int:
    if not result.ok:
        print(f"Failed to fetch reviews for {result.slug}: {result.error}", file=sys.stderr)
        return 1
    for w in result.warnings:
        print(f"warning: {w}", file=sys.stderr)
    action = "fetched" if result.created else "refreshed"
    rec = result.record
    print(f"{action} {result.fetched} reviews for {rec.name} ({rec.totalReviews} stored)")
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Track and refresh plugin reviews")
    parser.add_argument("--store", default=None, help="Path to the JSON store (default: REVIEW_STORE_PATH)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    modes = sorted(EXTRACTORS)
    add = sub.add_parser("add", help="Start tracking a plugin and fetch its reviews")
    add.add_argument("slug")
    add.add_argument("--mode", choices=modes, default="syndication")

    refresh = sub.add_parser("refresh", help="Refresh reviews of a tracked plugin")
    refresh.add_argument("slug")
    refresh.add_argument("--mode", choices=modes, default="syndication")

    remove = sub.add_parser("remove", help="Stop tracking a plugin")
    remove.add_argument("slug")

    export = sub.add_parser("export", help="Write all plugin records as JSON")
    export.add_argument("--out", default="-", help="Output file ('-' for stdout)")

    imp = sub.add_parser("import", help="Merge plugin records from an exported JSON file")
    imp.add_argument("file")

    parse = sub.add_parser("parse", help="Extract reviews from a saved listing page or feed (offline)")
    parse.add_argument("file")
    parse.add_argument("--mode", choices=modes, default="syndication")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    if args.cmd == "parse":
        with open(args.file, "r", encoding="utf-8") as f:
            document = f.read()
        extractor = select_extractor(args.mode)
        for raw in extractor.extract(document, source_url=args.file):
            review = normalize(raw)
            line = {"raw": raw.to_dict(), "review": review.to_dict() if review else None}
            print(json.dumps(line, ensure_ascii=False))
        return 0

    store = JsonFileStore(args.store or get_settings().resolved_store_path)
    service = ReviewIngestService(store)

    try:
        if args.cmd == "add":
            return _report(asyncio.run(service.add_plugin(args.slug, args.mode)))
        if args.cmd == "refresh":
            if store.load(args.slug) is None:
                print(f"Plugin '{args.slug}' is not tracked; use 'add' first", file=sys.stderr)
                return 1
            return _report(asyncio.run(service.refresh(args.slug, args.mode)))
        if args.cmd == "remove":
            if not asyncio.run(service.remove_plugin(args.slug)):
                print(f"Plugin '{args.slug}' is not tracked", file=sys.stderr)
                return 1
            print(f"Removed {args.slug}")
            return 0
        if args.cmd == "export":
            body = dumps_export(store)
            if args.out == "-":
                print(body)
            else:
                with open(args.out, "w", encoding="utf-8") as f:
                    f.write(body)
                print(args.out)
            return 0
        if args.cmd == "import":
            with open(args.file, "r", encoding="utf-8") as f:
                data = loads_import(f.read())
            summary = asyncio.run(import_records(store, data))
            print(f"Uploaded data for {len(summary.slugs)} plugins")
            return 0
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except NotFound:
        print("Error: This plugin doesn't exist on WordPress.org", file=sys.stderr)
        return 2
    except RefreshInProgress as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
