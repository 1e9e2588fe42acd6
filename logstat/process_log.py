#!/usr/bin/env python3

# Standard libraries
import argparse
from datetime import datetime, timezone
from timeit import default_timer as timer
import json
import os
import sys

from logstat.batches import BUCKET, FileBatchSource, S3BatchSource
from logstat.parse import parse_logfile
from logstat.stats import DATE_FORMAT, mutations_for
from logstat.store import DuckDBStore, MemoryStore, RedisStore, apply


def json_dump(data, jsonfile, indent=None):
    """
    jsonify `data`
    """
    return json.dump(data, jsonfile, indent=indent, sort_keys=True)


def process_lines(lines, store, today, strict=False):
    """
    Parse `lines` and apply each download's mutations to `store`, in order.

    Returns (downloads, skipped). Store errors propagate.
    """
    count = 0
    skipped = []
    for download in parse_logfile(lines, skipped=skipped, strict=strict):
        apply(mutations_for(download, today), store)
        count += 1
    return count, len(skipped)


def parse_date(s):
    return datetime.strptime(s, DATE_FORMAT).date()


def make_source(args):
    if args.logs:
        return FileBatchSource(args.logs)
    prefix = args.prefix if args.prefix is not None else args.environment + "/"
    print("Looking for log files starting with `{0}`".format(prefix), file=sys.stderr)
    return S3BatchSource(bucket=args.bucket, prefix=prefix)


def make_store(args):
    if args.redis_url:
        return RedisStore.from_url(args.redis_url)
    if args.db:
        return DuckDBStore.connect(args.db)
    print("No store given, counting in memory", file=sys.stderr)
    return MemoryStore()


def main(argv=None):
    """main function"""

    parser = argparse.ArgumentParser(description='RubyGems.org download log processor')
    parser.add_argument('--environment', choices=['staging', 'production'], default='production',
                        help='environment whose logs are read from S3 (default: production)')
    parser.add_argument('--bucket', default=BUCKET, help='S3 bucket (default: %(default)s)')
    parser.add_argument('--prefix', default=None,
                        help='S3 key prefix (default: "<environment>/")')
    parser.add_argument('--db', help='DuckDB database file to count into')
    parser.add_argument('--redis-url', help='Redis URL to count into, eg. redis://localhost:6379')
    parser.add_argument('--date', type=parse_date, default=None,
                        help='day to record downloads under, YYYY-MM-DD (default: today, UTC)')
    parser.add_argument('--jsondir', help='write download_counts.json to this directory')
    parser.add_argument('--strict', action='store_true',
                        help='stop at the first malformed line')
    parser.add_argument('logs', metavar="logs", type=str, nargs="*",
                        help="CDN log files to parse; S3 is used when none are given.")
    args = parser.parse_args(argv)

    today = args.date or datetime.now(timezone.utc).date()
    source = make_source(args)
    store = make_store(args)

    total = 0
    try:
        for batch in source.list_batches():
            print("Processing {0}".format(batch), file=sys.stderr)
            start = timer()
            count, skipped = process_lines(source.read_lines(batch), store, today, strict=args.strict)
            print("-> {0} downloads processed, {1} lines skipped in {2:.3f}s".format(
                count, skipped, timer() - start), file=sys.stderr)
            total += count

        print("Processed {0} downloads".format(total), file=sys.stderr)

        if args.jsondir:
            with open(os.path.join(args.jsondir, "download_counts.json"), 'w') as f:
                json_dump(store.package_totals(), f, indent=1)
    finally:
        store.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
