"""Read-only access to the Mordecai data directory.

Every dashboard view is backed by one file written by the agent process:
an append-only activity log (JSONL) plus a handful of JSON documents.
This module locates those files and reads them fresh on every call,
separating "file not there yet" (returns None) from real failures
(raises StoreError subclasses).
"""

import json
import logging
import os
import re
import time
from datetime import datetime

logger = logging.getLogger(__name__)

ACTIVITY_LOG_NAME = 'activity.jsonl'
STATUS_NAME = 'status.json'
MEMORY_NAME = 'memory.json'
AGENTS_NAME = 'agents.json'
SYSTEM_NAME = 'system.json'
DAILY_DIR_NAME = 'daily'

DAY_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')


class StoreError(Exception):
    """Base class for failures reading an existing data file."""

    def __init__(self, path, message):
        super().__init__(f'{message}: {path}')
        self.path = path


class StoreReadError(StoreError):
    """The file exists but could not be read (permissions, I/O)."""


class StoreParseError(StoreError):
    """The file was read but its contents are not usable."""


def activity_log_path(data_dir):
    return os.path.join(data_dir, ACTIVITY_LOG_NAME)


def status_path(data_dir):
    return os.path.join(data_dir, STATUS_NAME)


def memory_path(data_dir):
    return os.path.join(data_dir, MEMORY_NAME)


def agents_path(data_dir):
    return os.path.join(data_dir, AGENTS_NAME)


def system_path(data_dir):
    return os.path.join(data_dir, SYSTEM_NAME)


def daily_summary_path(data_dir, day):
    """Return the summary path for one day, refusing anything but YYYY-MM-DD."""
    if not is_valid_day(day):
        raise ValueError(f'Invalid day: {day!r}')
    return os.path.join(data_dir, DAILY_DIR_NAME, f'{day}.json')


def is_valid_day(value):
    """Check that value is a real calendar date in YYYY-MM-DD form."""
    if not isinstance(value, str) or not DAY_PATTERN.fullmatch(value):
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def read_store_text(path):
    """Read a whole data file as UTF-8 text.

    Returns None when the file does not exist. Raises StoreReadError when an
    existing file cannot be read and StoreParseError when its bytes are not
    valid UTF-8. Failures are reported once; there is no retry.
    """
    try:
        with open(path, 'r', encoding='utf-8-sig') as handle:
            return handle.read()
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as exc:
        logger.error('[STORE] Undecodable bytes in %s: %s', path, exc)
        raise StoreParseError(path, 'File is not valid UTF-8') from exc
    except OSError as exc:
        logger.error('[STORE] Failed to read %s: %s', path, exc)
        raise StoreReadError(path, 'Failed to read file') from exc


def load_json_document(path, expected=None):
    """Load one JSON document, or None when the file is absent.

    ``expected`` may be ``dict`` or ``list`` to insist on the top-level kind.
    """
    raw = read_store_text(path)
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error('[STORE] Invalid JSON in %s: %s', path, exc)
        raise StoreParseError(path, 'Invalid JSON document') from exc
    if expected is not None and not isinstance(payload, expected):
        raise StoreParseError(path, f'Expected a JSON {expected.__name__}')
    return payload


def utc_now_iso():
    """Return current UTC time as ISO-8601 string."""
    return time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())


def today_iso():
    """Return today's UTC date as YYYY-MM-DD."""
    return time.strftime('%Y-%m-%d', time.gmtime())


def parse_any_ts(value):
    """Parse timestamp-like values into comparable epoch seconds."""
    def normalize_epoch(raw):
        try:
            num = float(raw)
        except (TypeError, ValueError):
            return 0.0
        if num <= 0:
            return 0.0
        if num > 1e18:
            num = num / 1e9
        elif num > 1e15:
            num = num / 1e6
        elif num > 1e12:
            num = num / 1e3
        return float(num)

    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return normalize_epoch(value)
    if not isinstance(value, str):
        return 0.0
    text = value.strip()
    if not text:
        return 0.0
    if re.fullmatch(r'[-+]?\d+(?:\.\d+)?', text):
        return normalize_epoch(text)
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).timestamp()
    except ValueError:
        return 0.0
