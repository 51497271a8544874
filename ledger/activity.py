"""
Bounded activity log helpers.

The log is stored oldest first. Appending past capacity drops the oldest
entries, so only the most recent window survives.
"""

from typing import Iterable, Optional


def keep_last(items: list, capacity: int) -> list:
    if capacity <= 0:
        return []
    return list(items[-capacity:])


def append_activity(log: list[str], messages: Iterable[str], capacity: int) -> list[str]:
    return keep_last(list(log) + list(messages), capacity)


def most_recent_first(log: list[str], limit: Optional[int] = None) -> list[str]:
    window = keep_last(log, limit) if limit is not None else list(log)
    return list(reversed(window))


def unlocked_message(name: str) -> str:
    return f"Unlocked contact: {name}"


def uploaded_message(name: str) -> str:
    return f"Uploaded contact: {name}"
