# app_context.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from typing import Protocol
class LoggerLike(Protocol):
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...
    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


@dataclass
class AppContext:
    """Lightweight container for state shared across a driver run."""
    logger: LoggerLike
    config: Dict[str, Any]
    debug_mode: bool
    scheme: str
    mycall: str
    default_bandwidth: Optional[str] = None
    modem: Optional[Any] = None
    conn: Optional[Any] = None
    ptt: Optional[Any] = None
