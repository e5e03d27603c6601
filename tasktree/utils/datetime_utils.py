"""DateTime utility functions for tasktree."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    Timestamps are stored naive (UTC) so values read back from SQLite
    compare equal to the ones written.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
