# modems/vara/conn.py
import socket
from typing import Optional, TYPE_CHECKING

from modem_interface import Address

if TYPE_CHECKING:
    from .client import VaraModem


class VaraDataConn:
    """
    Stream handed to client code once a link is up.

    Reads and writes go straight to the VARA data socket. Closing the
    stream closes the whole link (RF and both TCP ports), not just the
    payload socket.
    """

    def __init__(self, sock: socket.socket, modem: "VaraModem"):
        self._sock = sock
        self.modem = modem

    # ---------- Stream I/O ----------

    def read(self, size: int = 1 << 16) -> bytes:
        return self._sock.recv(size)

    recv = read

    def write(self, data: bytes) -> int:
        self._sock.sendall(data)
        return len(data)

    def sendall(self, data: bytes) -> None:
        self._sock.sendall(data)

    def settimeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def fileno(self) -> int:
        return self._sock.fileno()

    # ---------- Link ----------

    def close(self) -> None:
        self.modem.close()

    def local_address(self) -> Address:
        return Address(self.modem.my_call, self.modem.scheme)

    def remote_address(self) -> Address:
        return Address(self.modem.remote_call, self.modem.scheme)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        return f"<VaraDataConn {self.local_address()} -> {self.remote_address()} ({self.modem.scheme})>"
