"""Activity log query engine.

The agent appends one JSON object per line to ``activity.jsonl``. Queries
reload the whole log, reverse it so the newest append comes first, apply the
optional type/channel/search filters (all must match) and cut one page.
Physical append order is the only ordering key; entry timestamps are ignored.

Malformed lines are skipped, counted in the page's ``skipped`` field and
logged, so one bad record never blanks the whole view.
"""

import json
import logging
from collections import Counter

from data_store import utc_now_iso

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ('message', 'task', 'cron', 'heartbeat', 'memory', 'tool', 'error')
SEARCH_FIELDS = ('summary', 'type', 'agentId')
DEFAULT_PAGE_SIZE = 25


def parse_activity_lines(raw_text):
    """Parse JSONL text into (entries in append order, skipped line count)."""
    entries = []
    skipped = 0
    if not raw_text:
        return entries, skipped
    if raw_text.startswith('\ufeff'):
        raw_text = raw_text[1:]
    # Split on newline only: JSON strings may legally carry U+2028 and friends.
    for line_no, line in enumerate(raw_text.split('\n'), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except (ValueError, RecursionError) as exc:
            logger.warning('[ACTIVITY] Skipping malformed line %d: %s', line_no, exc)
            skipped += 1
            continue
        if not isinstance(entry, dict):
            logger.warning('[ACTIVITY] Skipping non-object line %d', line_no)
            skipped += 1
            continue
        entries.append(entry)
    return entries, skipped


def _lower_text(value):
    return value.lower() if isinstance(value, str) else ''


def entry_matches_search(entry, term):
    """Case-insensitive substring match over summary, type and agentId.

    A missing or non-string field simply does not match.
    """
    needle = term.lower()
    return any(needle in _lower_text(entry.get(field)) for field in SEARCH_FIELDS)


def filter_entries(entries, activity_type=None, channel=None, search=None):
    """Apply the conjunctive type/channel/search filters, keeping order."""
    result = entries
    if activity_type:
        result = [e for e in result if e.get('type') == activity_type]
    if channel:
        result = [e for e in result if e.get('channel') == channel]
    if search:
        result = [e for e in result if entry_matches_search(e, search)]
    return result


def normalize_paging(page, page_size, max_page_size=None):
    """Coerce page/page size into usable positive values."""
    if page is None:
        page = 1
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    page = max(1, int(page))
    page_size = max(1, int(page_size))
    if max_page_size is not None:
        page_size = min(page_size, max_page_size)
    return page, page_size


def paginate(entries, page, page_size):
    """Return (items, has_more) for a 1-based page of entries."""
    offset = (page - 1) * page_size
    items = entries[offset:offset + page_size]
    return items, offset + page_size < len(entries)


def empty_page(page=1, page_size=DEFAULT_PAGE_SIZE):
    """Page returned when no activity log exists yet."""
    return {
        'items': [],
        'total': 0,
        'page': page,
        'pageSize': page_size,
        'hasMore': False,
        'skipped': 0,
        'timestamp': utc_now_iso(),
    }


def query_activity(raw_text, activity_type=None, channel=None, search=None,
                   page=1, page_size=DEFAULT_PAGE_SIZE):
    """Run one activity query over the raw log text and return a result page."""
    entries, skipped = parse_activity_lines(raw_text)
    entries.reverse()
    filtered = filter_entries(entries, activity_type=activity_type, channel=channel, search=search)
    items, has_more = paginate(filtered, page, page_size)
    if skipped:
        logger.info('[ACTIVITY] Query served with %d malformed line(s) skipped', skipped)
    return {
        'items': items,
        'total': len(filtered),
        'page': page,
        'pageSize': page_size,
        'hasMore': has_more,
        'skipped': skipped,
        'timestamp': utc_now_iso(),
    }


def recent_entries(raw_text, limit):
    """Return the newest ``limit`` entries, newest first."""
    entries, _ = parse_activity_lines(raw_text)
    entries.reverse()
    return entries[:limit]


def summarize_activity_types(entries):
    """Count entries per type with rounded percentages, most frequent first."""
    counts = Counter(str(e.get('type', 'unknown')) for e in entries)
    total = len(entries) or 1
    rows = [
        {'type': activity_type, 'count': count, 'pct': round(count * 100 / total)}
        for activity_type, count in counts.items()
    ]
    rows.sort(key=lambda row: (-row['count'], row['type']))
    return rows
