#!/usr/bin/env python3
"""
Standalone activity reader for the Mordecai dashboard.
Runs one activity query straight against the data directory and prints the
page as JSON. Handy for checking the log without starting the web server.
"""
import argparse
import json
import logging
import sys

import data_store
from activity_log import DEFAULT_PAGE_SIZE, empty_page, normalize_paging, query_activity
from dashboard import DATA_DIR, MAX_PAGE_SIZE


def build_parser():
    parser = argparse.ArgumentParser(description='Print one page of the Mordecai activity log')
    parser.add_argument('--data-dir', '-d', default=DATA_DIR, help=f'Data directory (default: {DATA_DIR})')
    parser.add_argument('--type', '-t', dest='activity_type', help='Only entries of this type')
    parser.add_argument('--channel', '-c', help='Only entries from this channel')
    parser.add_argument('--search', '-s', help='Case-insensitive text to look for')
    parser.add_argument('--page', '-p', type=int, default=1)
    parser.add_argument('--page-size', '-n', type=int, default=DEFAULT_PAGE_SIZE)
    return parser


def run(argv=None, out=None):
    """Execute the reader; returns the process exit code."""
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    page, page_size = normalize_paging(args.page, args.page_size, MAX_PAGE_SIZE)
    path = data_store.activity_log_path(args.data_dir)
    try:
        raw = data_store.read_store_text(path)
    except data_store.StoreError as exc:
        print(f'[READER] {exc}', file=sys.stderr)
        return 1

    if raw is None:
        result = empty_page(page, page_size)
    else:
        result = query_activity(
            raw,
            activity_type=args.activity_type,
            channel=args.channel,
            search=args.search,
            page=page,
            page_size=page_size,
        )
    json.dump(result, out, indent=2, ensure_ascii=False)
    out.write('\n')
    return 0


if __name__ == '__main__':
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    sys.exit(run())
