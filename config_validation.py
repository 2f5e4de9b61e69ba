"""Configuration validation helpers for the VARA client driver."""
from typing import Any, Dict, Optional

from modem_registry import MODEM_SCHEMES

PTT_TYPES = ("none", "rigctl")


class ConfigValidationError(Exception):
    pass


def _fail(logger, msg: str) -> None:
    logger.error(msg)
    raise ConfigValidationError(msg)


def _check_port(logger, section: str, key: str, value: Any) -> None:
    if value is None:
        return
    try:
        port = int(value)
    except (TypeError, ValueError):
        _fail(logger, f"Configuration error: '{section}.{key}' must be an integer, got {value!r}.")
    if not (1 <= port <= 65535):
        _fail(logger, f"Configuration error: '{section}.{key}' out of range (1-65535): {port}.")


def validate_vara_settings(settings: Optional[Dict[str, Any]], logger, mycall: Optional[str] = None) -> None:
    """Validate the 'vara' and 'ptt' sections early and loudly.

    - Require a registered scheme.
    - Require a call sign, from the command line or 'vara.mycall'.
    - Require a default bandwidth, if given, to be one the scheme supports.
    - Require sane ports and a known PTT type.
    """
    settings = settings or {}
    vara = settings.get("vara") or {}

    scheme = (vara.get("scheme") or "varahf").lower()
    if scheme not in MODEM_SCHEMES:
        _fail(
            logger,
            f"Configuration error: unknown VARA scheme '{scheme}'.\n"
            f"→ Valid options: {', '.join(MODEM_SCHEMES.keys())}",
        )

    if not (mycall or vara.get("mycall")):
        _fail(
            logger,
            "Configuration error: no call sign configured.\n"
            "→ Pass -c MYCALL on the command line or set 'mycall' under the vara section.",
        )

    bw = vara.get("bandwidth")
    if bw not in (None, ""):
        supported = MODEM_SCHEMES[scheme]["bandwidths"]
        if str(bw) not in supported:
            _fail(
                logger,
                f"Configuration error: bandwidth {bw} is not supported by {scheme}.\n"
                f"→ Supported: {', '.join(supported) or 'none (leave bandwidth unset)'}",
            )

    for key in ("cmd_port", "data_port"):
        _check_port(logger, "vara", key, vara.get(key))

    ptt = settings.get("ptt") or {}
    ptt_type = (ptt.get("type") or "none").lower()
    if ptt_type not in PTT_TYPES:
        _fail(logger, f"Configuration error: unknown ptt type '{ptt_type}'. Valid options: {', '.join(PTT_TYPES)}")
    _check_port(logger, "ptt", "port", ptt.get("port"))
