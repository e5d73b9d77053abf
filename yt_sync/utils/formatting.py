"""
Helper functions for formatting data into human-readable strings.
"""


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Returns e.g. '1 new song' or '3 new songs'."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"
