# ptt/rigctl/client.py
import socket
import threading
import time
from typing import Optional

from modem_interface import BaseModemError, PTTController
from loghandler import get_logger

logger = None

class RigctlError(BaseModemError):
    """Custom exception for RigctlPTT-related errors."""
    pass


class RigctlPTT(PTTController):
    """
    Keys a transceiver through the Hamlib rigctld network protocol.

    Design:
      - Raw TCP, opened lazily on the first keying request.
      - 'T 1' / 'T 0' are answered with 'RPRT <code>'; anything but 0 raises.
      - On a transport error the connection is reopened once and the command
        retried, so a restarted rigctld does not leave the modem unable to key.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 4532,
        timeout: float = 3.0,
        debug: bool = False,
    ) -> None:
        global logger
        if logger is None:
            logger = get_logger()

        self.host = host
        self.port = int(port)
        self.timeout = float(timeout)
        self.debug = bool(debug)

        self._sock: Optional[socket.socket] = None
        self._sock_buf: bytes = b""
        self.lock = threading.RLock()
        self.keyed = False

    # ---------------------------------------------------------------------
    # PTTController
    # ---------------------------------------------------------------------

    def set_ptt(self, on: bool) -> None:
        resp = self._send(f"T {1 if on else 0}")
        code = self._parse_rprt(resp)
        if code != 0:
            raise RigctlError(f"rigctld refused PTT {'ON' if on else 'OFF'}: '{resp}'")
        self.keyed = bool(on)
        if self.debug:
            logger.debug(f"[PTT] rigctld {'keyed' if on else 'unkeyed'}")

    def close(self) -> None:
        with self.lock:
            if self._sock:
                try:
                    self._sock.close()
                except OSError:
                    pass
                self._sock = None
                self._sock_buf = b""
        logger.info("Disconnected from rigctld")

    # ---------------------------------------------------------------------
    # Transport
    # ---------------------------------------------------------------------

    def _connect(self):
        """Open the rigctld socket (idempotent)."""
        if self._sock is not None:
            return
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            self._sock.settimeout(self.timeout)
            self._sock_buf = b""
            logger.info(f"Connected to rigctld at {self.host}:{self.port}")
        except OSError as e:
            logger.error(
                "Failed to connect to rigctld at %s:%d. Is rigctld running? Error: %s",
                self.host, self.port, e
            )
            raise RigctlError(f"Failed to connect to rigctld: {e}") from e

    def _reconnect(self):
        with self.lock:
            if self._sock:
                try:
                    self._sock.close()
                except OSError:
                    pass
                self._sock = None
            self._connect()
            logger.info(f"[rigctl] reconnected {self.host}:{self.port}")

    def _readline_socket(self) -> bytes:
        """Return one LF-terminated line from the socket using a persistent buffer."""
        if self._sock is None:
            return b""

        end = time.time() + self.timeout
        while b"\n" not in self._sock_buf and time.time() < end:
            chunk = self._sock.recv(4096)
            if not chunk:
                raise ConnectionError("rigctld closed the connection")
            self._sock_buf += chunk

        if b"\n" in self._sock_buf:
            line, self._sock_buf = self._sock_buf.split(b"\n", 1)
            return line
        line, self._sock_buf = self._sock_buf, b""
        return line

    def _exchange(self, cmd: str) -> str:
        self._connect()
        assert self._sock is not None
        self._sock.sendall((cmd + "\n").encode())
        return self._readline_socket().decode(errors="replace").strip()

    def _send(self, cmd: str) -> str:
        """Send a rigctl command and return the first reply line, retrying once on transport error."""
        if self.debug:
            logger.debug(f"[rigctl] > {cmd}")

        with self.lock:
            try:
                resp = self._exchange(cmd)
            except RigctlError:
                raise
            except OSError as e:
                if self.debug:
                    logger.debug(f"[rigctl] comm error, attempting reconnect: {e}")
                self._reconnect()
                try:
                    resp = self._exchange(cmd)
                except OSError as e2:
                    raise RigctlError(f"Communication error with rigctld: {e2}") from e2

        if self.debug:
            logger.debug(f"[rigctl] < {resp}")
        return resp

    @staticmethod
    def _parse_rprt(resp: str) -> Optional[int]:
        parts = resp.split()
        if len(parts) >= 2 and parts[0].upper() == "RPRT":
            try:
                return int(parts[1])
            except ValueError:
                return None
        return None
