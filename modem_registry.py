# modem_registry.py
"""
Registry of supported VARA modem variants (schemes).
"""

from typing import Dict, Any, List

MODEM_SCHEMES: Dict[str, Dict[str, Any]] = {
    "varahf": {
        "label": "VARA HF",
        # CWID and P2P/WINLINK session commands only exist on HF
        "hf_commands": True,
        "bandwidths": ["500", "2300", "2750"],
    },
    "varafm": {
        "label": "VARA FM",
        "hf_commands": False,
        "bandwidths": [],
    },
}


def bandwidths(scheme: str) -> List[str]:
    """Return the bandwidths (as strings, e.g. '2300') a scheme accepts."""
    entry = MODEM_SCHEMES.get(scheme)
    if entry is None:
        return []
    return list(entry["bandwidths"])


__all__ = ["MODEM_SCHEMES", "bandwidths"]
