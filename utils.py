# utils.py
# Small formatting helpers for the driver.

from __future__ import annotations


def pretty_duration(seconds: float) -> str:
    """Format duration as '1h 2m 05s' / '22m 03s' / '3.40 s' / '850 ms'."""
    if seconds < 0:
        seconds = 0.0

    if seconds < 0.001:
        return "0 ms"
    if seconds < 1.0:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60.0:
        return f"{seconds:.2f} s"

    total = int(round(seconds))
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60

    if h > 0:
        return f"{h}h {m}m {s:02d}s"
    return f"{m}m {s:02d}s"
