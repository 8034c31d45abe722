"""History Log — pure maintenance of the capped most-recent-first summary list.

Invariants:
    - At most one entry per session_id
    - Newest (or most recently updated) entry is always at index 0
    - Length never exceeds the cap; the oldest entries drop first
"""

from mathcoach.core.domain_types import HISTORY_CAP

SUMMARY_LENGTH = 20


def summarize_problem(problem_text: str) -> str:
    text = problem_text.strip()
    if len(text) <= SUMMARY_LENGTH:
        return text
    return text[:SUMMARY_LENGTH] + "..."


def upsert_history_entry(
    entries: list[dict], entry: dict, cap: int = HISTORY_CAP,
) -> tuple[list[dict], bool]:
    """Place `entry` at the head, replacing any entry with the same session_id.

    Returns (new_entries, is_new). Input list is not mutated.
    """
    session_id = entry["session_id"]
    remaining = [e for e in entries if e.get("session_id") != session_id]
    is_new = len(remaining) == len(entries)
    return ([entry] + remaining)[:cap], is_new


def paginate(items: list, page: int, page_size: int) -> tuple[list, bool]:
    """Slice for a 1-based page. Returns (slice, has_more)."""
    start = (page - 1) * page_size
    end = start + page_size
    return items[start:end], end < len(items)
