"""
Human readable formatting of byte and time counters.

Pure, stateless helpers used by the CLI and the usage reports.
"""

import math

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(num_bytes: int) -> str:
    """Format a byte count with 1024-based units, e.g. ``1.5 GB``.

    At most two decimals are kept and trailing zeros are dropped.
    Zero and negative values render as ``0 Bytes``.
    """
    if num_bytes <= 0:
        return "0 Bytes"

    index = min(int(math.log(num_bytes, 1024)), len(BYTE_UNITS) - 1)
    # Float log can land on either side of an exact power of 1024
    if index + 1 < len(BYTE_UNITS) and num_bytes >= 1024 ** (index + 1):
        index += 1
    elif index > 0 and num_bytes < 1024 ** index:
        index -= 1
    value = round(num_bytes / 1024 ** index, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[index]}"


def format_time(seconds: int) -> str:
    """Format a duration in seconds, e.g. ``1h 30m`` or ``45s``."""
    if seconds <= 0:
        return "0 seconds"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, remaining_seconds = divmod(remainder, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if remaining_seconds > 0 or not parts:
        parts.append(f"{remaining_seconds}s")
    return " ".join(parts)
