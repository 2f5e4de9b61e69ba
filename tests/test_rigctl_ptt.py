from __future__ import annotations

import socket
import threading
from typing import List

import pytest

from modem_interface import BaseModemError
from ptt.rigctl import RigctlError, RigctlPTT


class FakeRigctld:
    """Answers each line with the next canned reply (default 'RPRT 0')."""

    def __init__(self, replies: List[str] = None, drop_first: bool = False) -> None:
        self.srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.srv.bind(("127.0.0.1", 0))
        self.srv.listen(5)
        self.port = self.srv.getsockname()[1]
        self.replies = list(replies or [])
        self.drop_first = drop_first
        self.received: List[str] = []
        self.connections = 0
        threading.Thread(target=self._serve, daemon=True).start()

    def _serve(self) -> None:
        while True:
            try:
                conn, _ = self.srv.accept()
            except OSError:
                return
            self.connections += 1
            if self.drop_first and self.connections == 1:
                conn.close()
                continue
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        f = conn.makefile("rwb")
        for raw in f:
            self.received.append(raw.decode().strip())
            reply = self.replies.pop(0) if self.replies else "RPRT 0"
            f.write((reply + "\n").encode())
            f.flush()

    def close(self) -> None:
        self.srv.close()


@pytest.fixture
def rigctld():
    servers = []

    def _make(**kwargs) -> FakeRigctld:
        srv = FakeRigctld(**kwargs)
        servers.append(srv)
        return srv

    yield _make
    for srv in servers:
        srv.close()


def test_keys_and_unkeys(rigctld):
    srv = rigctld()
    ptt = RigctlPTT("127.0.0.1", srv.port)

    ptt.set_ptt(True)
    assert ptt.keyed is True
    ptt.set_ptt(False)
    assert ptt.keyed is False

    assert srv.received == ["T 1", "T 0"]
    assert srv.connections == 1
    ptt.close()


def test_nonzero_report_raises(rigctld):
    srv = rigctld(replies=["RPRT -11"])
    ptt = RigctlPTT("127.0.0.1", srv.port)

    with pytest.raises(RigctlError):
        ptt.set_ptt(True)
    assert ptt.keyed is False
    ptt.close()


def test_reconnects_once_after_dropped_connection(rigctld):
    srv = rigctld(drop_first=True)
    ptt = RigctlPTT("127.0.0.1", srv.port, timeout=1.0)

    ptt.set_ptt(True)

    assert srv.received == ["T 1"]
    assert srv.connections == 2
    ptt.close()


def test_unreachable_rigctld(free_port):
    ptt = RigctlPTT("127.0.0.1", free_port, timeout=0.5)
    with pytest.raises(RigctlError) as excinfo:
        ptt.set_ptt(True)
    assert isinstance(excinfo.value, BaseModemError)
