"""Mordecai monitoring dashboard backend.

Read-only JSON API over the files the Mordecai agent writes to its data
directory: status, activity log, memory, sub-agents, system info and daily
summaries. Every request reloads the relevant file; nothing is cached and
nothing is written back.
"""

import argparse
import logging
import os
import time

from flask import Flask, request
from werkzeug.exceptions import HTTPException

import data_store
from activity_log import (
    DEFAULT_PAGE_SIZE,
    empty_page,
    normalize_paging,
    query_activity,
    recent_entries,
    summarize_activity_types,
)
from data_store import StoreError, today_iso, utc_now_iso

__version__ = '0.1.0'

DATA_DIR = os.path.expanduser(
    os.environ.get('MORDECAI_DASHBOARD_DATA_DIR', os.path.join(os.getcwd(), 'data'))
)
HOST = os.environ.get('MORDECAI_DASHBOARD_HOST', '0.0.0.0')
try:
    PORT = int(os.environ.get('MORDECAI_DASHBOARD_PORT', '5050'))
except ValueError:
    PORT = 5050
try:
    MAX_PAGE_SIZE = int(os.environ.get('MORDECAI_DASHBOARD_MAX_PAGE_SIZE', '200'))
except ValueError:
    MAX_PAGE_SIZE = 200
MAX_PAGE_SIZE = max(1, min(MAX_PAGE_SIZE, 1000))
LOG_LEVEL = os.environ.get('MORDECAI_DASHBOARD_LOG_LEVEL', 'INFO').strip().upper()

OVERVIEW_RECENT_ITEMS = 12
OVERVIEW_DISTRIBUTION_WINDOW = 14

app = Flask(__name__)
app.config['DATA_DIR'] = DATA_DIR
app.config['MAX_PAGE_SIZE'] = MAX_PAGE_SIZE


def data_dir():
    return app.config['DATA_DIR']


def error_response(message, status):
    return {'error': message}, status


@app.errorhandler(Exception)
def handle_unexpected_error(exc):
    """Turn anything that escaped a route into a generic JSON 500."""
    if isinstance(exc, HTTPException):
        return error_response(exc.description, exc.code)
    app.logger.exception('Unhandled error serving %s', request.path)
    return error_response('Internal server error', 500)


@app.route('/ready')
def ready():
    """Report whether the data directory is present."""
    return {'ready': os.path.isdir(data_dir())}


@app.route('/capabilities')
def capabilities():
    """Expose where data is read from and which data files currently exist."""
    root = data_dir()
    files = {
        'activity': data_store.activity_log_path(root),
        'status': data_store.status_path(root),
        'memory': data_store.memory_path(root),
        'agents': data_store.agents_path(root),
        'system': data_store.system_path(root),
    }
    return {
        'version': __version__,
        'data_dir': root,
        'files': {name: os.path.isfile(path) for name, path in files.items()},
        'daily_dir': os.path.isdir(os.path.join(root, data_store.DAILY_DIR_NAME)),
        'paging': {
            'default_page_size': DEFAULT_PAGE_SIZE,
            'max_page_size': app.config['MAX_PAGE_SIZE'],
        },
    }


@app.route('/api/activity')
def activity():
    """Return one filtered page of the activity log, newest first."""
    page, page_size = normalize_paging(
        request.args.get('page', type=int),
        request.args.get('pageSize', type=int),
        app.config['MAX_PAGE_SIZE'],
    )
    try:
        raw = data_store.read_store_text(data_store.activity_log_path(data_dir()))
    except StoreError:
        app.logger.exception('Failed to read activity log')
        return error_response('Failed to read activity log', 500)

    if raw is None:
        return empty_page(page, page_size)

    return query_activity(
        raw,
        activity_type=request.args.get('type') or None,
        channel=request.args.get('channel') or None,
        search=request.args.get('search') or None,
        page=page,
        page_size=page_size,
    )


@app.route('/api/status')
def status():
    """Return the agent's current status document."""
    try:
        data = data_store.load_json_document(data_store.status_path(data_dir()), expected=dict)
    except StoreError:
        app.logger.exception('Failed to read status')
        return error_response('Failed to read status', 500)
    if data is None:
        return error_response('No status data', 404)
    return {'data': data, 'timestamp': utc_now_iso()}


@app.route('/api/daily')
def daily():
    """Return the daily summary for ?date=YYYY-MM-DD (default: today, UTC)."""
    day = request.args.get('date') or today_iso()
    if not data_store.is_valid_day(day):
        return error_response('Invalid date, expected YYYY-MM-DD', 400)
    try:
        data = data_store.load_json_document(data_store.daily_summary_path(data_dir(), day), expected=dict)
    except StoreError:
        app.logger.exception('Failed to read daily summary for %s', day)
        return error_response('Failed to read daily summary', 500)
    if data is None:
        return error_response(f'No data for {day}', 404)
    return {'data': data, 'timestamp': utc_now_iso()}


def memory_entry_matches(entry, term):
    """Lowercase substring match over a memory entry's title, content and tags."""
    title = entry.get('title')
    content = entry.get('content')
    tags = entry.get('tags')
    if isinstance(title, str) and term in title.lower():
        return True
    if isinstance(content, str) and term in content.lower():
        return True
    if isinstance(tags, list):
        return any(isinstance(tag, str) and term in tag.lower() for tag in tags)
    return False


def filter_memory_entries(entries, search):
    if not search:
        return entries
    term = search.lower()
    return [e for e in entries if isinstance(e, dict) and memory_entry_matches(e, term)]


@app.route('/api/memory')
def memory():
    """Return memory entries, optionally narrowed by ?search=."""
    try:
        payload = data_store.load_json_document(data_store.memory_path(data_dir()), expected=dict)
    except StoreError:
        app.logger.exception('Failed to read memory')
        return error_response('Failed to read memory', 500)

    if payload is None:
        return {
            'entries': [],
            'totalSizeBytes': 0,
            'totalSize': format_bytes(0),
            'lastConsolidated': None,
            'timestamp': utc_now_iso(),
        }

    entries = payload.get('entries')
    if not isinstance(entries, list):
        entries = []
    total_size = payload.get('totalSizeBytes', 0)
    return {
        'entries': filter_memory_entries(entries, request.args.get('search')),
        'totalSizeBytes': total_size,
        'totalSize': format_bytes(total_size),
        'lastConsolidated': payload.get('lastConsolidated'),
        'timestamp': utc_now_iso(),
    }


@app.route('/api/agents')
def agents():
    """Return the sub-agent listing."""
    try:
        data = data_store.load_json_document(data_store.agents_path(data_dir()), expected=list)
    except StoreError:
        app.logger.exception('Failed to read agents')
        return error_response('Failed to read agents', 500)
    return {'data': data if data is not None else [], 'timestamp': utc_now_iso()}


@app.route('/api/system')
def system():
    """Return host/system information recorded by the agent."""
    try:
        data = data_store.load_json_document(data_store.system_path(data_dir()))
    except StoreError:
        app.logger.exception('Failed to read system data')
        return error_response('Failed to read system data', 500)
    if data is None:
        return error_response('No system data', 404)
    return {'data': data, 'timestamp': utc_now_iso()}


def format_uptime(seconds):
    """Format an uptime in seconds as e.g. '2d 3h 4m', '3h 4m' or '4m'."""
    if not isinstance(seconds, (int, float)) or isinstance(seconds, bool) or seconds < 0:
        return ''
    seconds = int(seconds)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f'{days}d {hours}h {minutes}m'
    if hours > 0:
        return f'{hours}h {minutes}m'
    return f'{minutes}m'


def _as_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def format_tokens(count):
    """Compact token count: 1.2M, 3.4K or the plain number."""
    count = _as_number(count)
    if count >= 1000000:
        return f'{count / 1000000:.1f}M'
    if count >= 1000:
        return f'{count / 1000:.1f}K'
    return str(count)


def format_bytes(size):
    size = _as_number(size)
    if size < 1024:
        return f'{size} B'
    return f'{size / 1024:.1f} KB'


def heartbeat_age_seconds(last_heartbeat, now=None):
    """Seconds elapsed since the last heartbeat, or None when unknown."""
    ts = data_store.parse_any_ts(last_heartbeat)
    if ts <= 0:
        return None
    if now is None:
        now = time.time()
    return max(0, int(now - ts))


@app.route('/api/overview')
def overview():
    """Aggregate status, today's summary and recent activity for the home view."""
    root = data_dir()
    day = today_iso()
    try:
        status_doc = data_store.load_json_document(data_store.status_path(root), expected=dict)
        daily_doc = data_store.load_json_document(data_store.daily_summary_path(root, day), expected=dict)
        raw = data_store.read_store_text(data_store.activity_log_path(root))
    except StoreError:
        app.logger.exception('Failed to build overview')
        return error_response('Failed to build overview', 500)

    recent = recent_entries(raw, OVERVIEW_DISTRIBUTION_WINDOW)
    uptime = status_doc.get('uptime') if status_doc else None
    last_heartbeat = status_doc.get('lastHeartbeat') if status_doc else None
    return {
        'date': day,
        'status': status_doc,
        'daily': daily_doc,
        'uptime': format_uptime(uptime),
        'lastHeartbeatAgeSeconds': heartbeat_age_seconds(last_heartbeat),
        'tokensUsed': format_tokens(daily_doc.get('tokensUsed') if daily_doc else 0),
        'recentActivity': recent[:OVERVIEW_RECENT_ITEMS],
        'typeDistribution': summarize_activity_types(recent),
        'timestamp': utc_now_iso(),
    }


def main(argv=None):  # pragma: no cover
    parser = argparse.ArgumentParser(description='Mordecai dashboard: read-only monitoring API')
    parser.add_argument('--host', '-H', type=str, default=HOST, help=f'Host (default: {HOST})')
    parser.add_argument('--port', '-p', type=int, default=PORT, help=f'Port (default: {PORT})')
    parser.add_argument('--data-dir', '-d', type=str, help='Directory holding the agent data files')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')
    parser.add_argument('--version', '-v', action='version', version=f'mordecai-dashboard {__version__}')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    if args.data_dir:
        app.config['DATA_DIR'] = os.path.expanduser(args.data_dir)
    app.logger.info('Serving data from %s on %s:%s', app.config['DATA_DIR'], args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)


if __name__ == '__main__':  # pragma: no cover
    main()
