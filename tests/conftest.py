from __future__ import annotations

import socket
import threading
import time
from typing import Callable, List, Tuple

import pytest

from loghandler import setup_logging
from modem_interface import BaseModemError, PTTController
from modems.vara import ModemConfig, VaraModem


@pytest.fixture(autouse=True, scope="session")
def _logging(tmp_path_factory):
    setup_logging(log_dir=str(tmp_path_factory.mktemp("logs")), debug=True)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _listener() -> socket.socket:
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    srv.bind(("127.0.0.1", 0))
    srv.listen(5)
    return srv


class FakeVara:
    """Loopback stand-in for the VARA program: a command port and a data port."""

    def __init__(self) -> None:
        self.cmd_srv = _listener()
        self.data_srv = _listener()
        self.cond = threading.Condition()
        self.commands: List[str] = []
        self.cmd_conn: socket.socket | None = None
        self.cmd_connections = 0
        self.data_conns: List[socket.socket] = []
        self._replies: List[Tuple[str, Tuple[str, ...]]] = []
        self._open: List[socket.socket] = []
        for target in (self._cmd_accept_loop, self._data_accept_loop):
            threading.Thread(target=target, daemon=True).start()

    @property
    def cmd_port(self) -> int:
        return self.cmd_srv.getsockname()[1]

    @property
    def data_port(self) -> int:
        return self.data_srv.getsockname()[1]

    def config(self) -> ModemConfig:
        return ModemConfig(host="127.0.0.1", cmd_port=self.cmd_port, data_port=self.data_port)

    def reply_to(self, prefix: str, *lines: str) -> None:
        """Answer any command starting with prefix with the given event lines."""
        self._replies.append((prefix, lines))

    # ---------- server loops ----------

    def _cmd_accept_loop(self) -> None:
        while True:
            try:
                conn, _ = self.cmd_srv.accept()
            except OSError:
                return
            with self.cond:
                self._open.append(conn)
                self.cmd_conn = conn
                self.cmd_connections += 1
                self.cond.notify_all()
            threading.Thread(target=self._cmd_reader, args=(conn,), daemon=True).start()

    def _cmd_reader(self, conn: socket.socket) -> None:
        buf = b""
        while True:
            try:
                data = conn.recv(4096)
            except OSError:
                return
            if not data:
                return
            buf += data
            while b"\r" in buf:
                raw, buf = buf.split(b"\r", 1)
                line = raw.decode()
                with self.cond:
                    self.commands.append(line)
                    self.cond.notify_all()
                for prefix, lines in self._replies:
                    if line.startswith(prefix):
                        for event in lines:
                            conn.sendall((event + "\r").encode())
                        break

    def _data_accept_loop(self) -> None:
        while True:
            try:
                conn, _ = self.data_srv.accept()
            except OSError:
                return
            with self.cond:
                self._open.append(conn)
                self.data_conns.append(conn)
                self.cond.notify_all()

    # ---------- test helpers ----------

    def send_event(self, line: str, timeout: float = 2.0) -> None:
        self.send_raw((line + "\r").encode(), timeout)

    def send_raw(self, data: bytes, timeout: float = 2.0) -> None:
        with self.cond:
            assert self.cond.wait_for(lambda: self.cmd_conn is not None, timeout)
            conn = self.cmd_conn
        conn.sendall(data)

    def wait_for_command(self, command: str, timeout: float = 2.0) -> bool:
        with self.cond:
            return self.cond.wait_for(lambda: command in self.commands, timeout)

    def wait_for_data_conn(self, timeout: float = 2.0) -> socket.socket:
        with self.cond:
            assert self.cond.wait_for(lambda: bool(self.data_conns), timeout)
            return self.data_conns[-1]

    def close(self) -> None:
        for s in [self.cmd_srv, self.data_srv] + self._open:
            try:
                s.close()
            except OSError:
                pass


class RecordingPTT(PTTController):
    def __init__(self) -> None:
        self.calls: List[bool] = []

    def set_ptt(self, on: bool) -> None:
        self.calls.append(on)


@pytest.fixture
def fake():
    server = FakeVara()
    yield server
    server.close()


@pytest.fixture
def make_modem(fake):
    created: List[VaraModem] = []

    def _make(scheme: str = "varahf", my_call: str = "ME", **kwargs) -> VaraModem:
        kwargs.setdefault("disconnect_timeout", 1.0)
        modem = VaraModem(scheme, my_call, fake.config(), **kwargs)
        created.append(modem)
        return modem

    yield _make

    for modem in created:
        modem.disconnect_timeout = 0.2
        try:
            modem.close()
        except BaseModemError:
            pass


@pytest.fixture
def free_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
