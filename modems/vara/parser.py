# modems/vara/parser.py
from typing import Callable, Optional

from loghandler import get_logger


class VaraParser:
    """
    Dispatch table for lines arriving on the VARA command port.

      - 'PTT ON' / 'PTT OFF'            -> on_ptt(bool)
      - 'BUSY ON' / 'BUSY OFF'          -> on_busy(bool)
      - 'OK', 'IAMALIVE', 'PENDING'     -> nothing
      - 'DISCONNECTED'                  -> on_disconnected(); reader stops
      - 'CONNECTED ...'                 -> on_connected(tokens after the keyword)
      - 'BUFFER ...'                    -> nothing
      - 'REGISTERED <id>'               -> logged
      - anything else                   -> logged as unexpected

    feed() returns False only for DISCONNECTED, telling the reader to stop.
    Exact matches are tried before prefixes, so 'DISCONNECTED' never reaches
    the 'CONNECTED' prefix branch.
    """

    _IGNORED = frozenset({"OK", "IAMALIVE", "PENDING"})

    def __init__(
        self,
        on_ptt: Optional[Callable[[bool], None]] = None,
        on_busy: Optional[Callable[[bool], None]] = None,
        on_connected: Optional[Callable[[list], None]] = None,
        on_disconnected: Optional[Callable[[], None]] = None,
    ):
        self._on_ptt = on_ptt
        self._on_busy = on_busy
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._logger = get_logger()

    def feed(self, line: str) -> bool:
        line = line.strip()
        if not line:
            return True

        if line in ("PTT ON", "PTT OFF"):
            if self._on_ptt:
                self._on_ptt(line == "PTT ON")
        elif line in ("BUSY ON", "BUSY OFF"):
            if self._on_busy:
                self._on_busy(line == "BUSY ON")
        elif line in self._IGNORED:
            pass
        elif line == "DISCONNECTED":
            if self._on_disconnected:
                self._on_disconnected()
            return False
        elif line.startswith("CONNECTED"):
            if self._on_connected:
                self._on_connected(line.split()[1:])
        elif line.startswith("BUFFER"):
            pass
        elif line.startswith("REGISTERED"):
            parts = line.split()
            if len(parts) > 1:
                self._logger.info(f"[VARA] Full speed available, registered to {parts[1]}")
        else:
            self._logger.warning(f"[VARA] Got a command I wasn't expecting: {line}")
        return True
