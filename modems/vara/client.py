import os
import socket
import threading
from typing import Optional, Union
from urllib.parse import urlparse, parse_qs

from loghandler import get_logger
from modem_interface import (
    Address,
    ConnectionFailedError,
    ConnectionState,
    ModemConfigurationError,
    ModemStateError,
    NullPTTController,
    PTTController,
    UnsupportedSchemeError,
)
from modem_registry import MODEM_SCHEMES

from .config import ModemConfig
from .conn import VaraDataConn
from .notifier import StateNotifier
from .parser import VaraParser
from .transport import VaraTransport, open_tcp, close_tcp

DISCONNECT_TIMEOUT = 10.0


class VaraModem:
    """
    Session with a VARA modem program (HF or FM).

    Composition:
      - VaraTransport: command socket plus the reader thread.
      - VaraParser: turns command-port lines into callbacks.
      - StateNotifier: hands each state transition to one blocked caller.

    State only changes on events from the modem: sending CONNECT does not
    make the session connected, a later 'CONNECTED ...' line does. The
    session doubles as a listener (listen/accept/addr) and can be reused
    after close().
    """

    def __init__(
        self,
        scheme: str,
        my_call: str,
        config: Optional[ModemConfig] = None,
        *,
        ptt: Optional[PTTController] = None,
        debug: Optional[bool] = None,
        disconnect_timeout: float = DISCONNECT_TIMEOUT,
        connect_timeout: float = 5.0,
    ):
        if scheme not in MODEM_SCHEMES:
            raise ModemConfigurationError(
                f"Unknown VARA scheme '{scheme}'. Valid options: {', '.join(MODEM_SCHEMES.keys())}"
            )
        self.logger = get_logger()
        self.scheme = scheme
        self.my_call = my_call
        self.config = (config or ModemConfig()).with_defaults()
        self.debug = bool(os.getenv("VARA_DEBUG")) if debug is None else bool(debug)
        self.disconnect_timeout = float(disconnect_timeout)
        self._scheme_info = MODEM_SCHEMES[scheme]

        self.lock = threading.RLock()
        self.state = ConnectionState.DISCONNECTED
        self.remote_call = ""
        self.data_conn: Optional[socket.socket] = None
        self._busy = False
        self._ptt: PTTController = ptt or NullPTTController()

        self._notifier = StateNotifier()
        self.parser = VaraParser(
            on_ptt=self._on_ptt,
            on_busy=self._on_busy,
            on_connected=self._on_connected,
            on_disconnected=self._on_disconnected,
        )
        self.transport = VaraTransport(
            host=self.config.host,
            port=self.config.cmd_port,
            connect_timeout=connect_timeout,
            debug=self.debug,
            line_callback=self.parser.feed,
        )

    # ------------- Session setup -------------

    @property
    def hf(self) -> bool:
        return bool(self._scheme_info["hf_commands"])

    def start(self):
        """
        Open the command and data ports, start the reader and configure the
        modem. An already open command port is reused.
        """
        with self.lock:
            self.transport.connect()
            self.transport.start_listener()
            need_data = self.data_conn is None

        if need_data:
            try:
                sock = open_tcp(
                    "data", self.config.host, self.config.data_port,
                    timeout=self.transport.connect_timeout,
                )
            except Exception:
                self._teardown()
                raise
            with self.lock:
                self.data_conn = sock

        # channel is not busy until VARA tells otherwise
        self._busy = False

        self.logger.info(
            f"[VARA] {self._scheme_info['label']} ready at {self.config.host}:{self.config.cmd_port}/{self.config.data_port}"
        )
        self._send("PUBLIC ON")
        if self.hf:
            self._send("CWID ON")
        self._send("COMPRESSION TEXT")
        self._send(f"MYCALL {self.my_call}")

    def _check_idle(self, op: str):
        if self.state is ConnectionState.CONNECTED:
            raise ModemStateError(f"Cannot {op}: already connected to {self.remote_call or 'a remote station'}")

    def _validate_bandwidth(self, bandwidth: Union[int, str, None]) -> Optional[str]:
        if bandwidth is None or str(bandwidth).strip() == "":
            return None
        bw = str(bandwidth).strip()
        if bw not in self._scheme_info["bandwidths"]:
            self.logger.error(f"[VARA] Bandwidth {bw} not supported by {self.scheme}")
            raise ModemConfigurationError(f"bandwidth {bw} not supported")
        return bw

    # ------------- Dialer -------------

    def dial(self, target: str, bandwidth: Union[int, str, None] = None, p2p: bool = False) -> VaraDataConn:
        """Connect to a remote station and block until VARA reports the outcome."""
        self._check_idle("dial")
        bw = self._validate_bandwidth(bandwidth)
        target = (target or "").strip()
        if not target:
            raise ModemConfigurationError("A target call sign is required")

        self._notifier.discard()
        self.start()

        if bw:
            self._send(f"BW{bw}")
        if self.hf:
            self._send("P2P SESSION" if p2p else "WINLINK SESSION")

        with self.lock:
            self.remote_call = target
        sub = self._notifier.subscribe()
        try:
            self._send(f"CONNECT {self.my_call} {target}")
        except Exception:
            sub.cancel()
            raise
        self.logger.info(f"[VARA] Connecting {self.my_call} -> {target}")

        if sub.wait() is not ConnectionState.CONNECTED:
            self.logger.warning(f"[VARA] Connection to {target} failed")
            raise ConnectionFailedError(f"connection to {target} failed")
        return self._hand_over()

    def dial_url(self, url: str) -> VaraDataConn:
        """Dial from a URL such as 'varahf:///N0CALL?bw=2300&p2p=true'."""
        parsed = urlparse(url)
        if parsed.scheme != self.scheme:
            raise UnsupportedSchemeError(f"Unsupported scheme '{parsed.scheme}' (session is {self.scheme})")
        target = parsed.netloc or parsed.path.strip("/").split("/")[0]
        params = parse_qs(parsed.query)
        bw = (params.get("bw") or [None])[0]
        p2p = (params.get("p2p") or [""])[0] == "true"
        return self.dial(target, bandwidth=bw, p2p=p2p)

    # ------------- Listener -------------

    def listen(self) -> "VaraModem":
        """Ask VARA to answer incoming calls; use accept() to wait for one."""
        self._check_idle("listen")
        self._notifier.discard()
        self.start()
        self._send("LISTEN ON")
        self.logger.info(f"[VARA] Listening as {self.my_call}")
        return self

    def accept(self) -> VaraDataConn:
        """Block until the next connection is established."""
        if self._notifier.wait() is not ConnectionState.CONNECTED:
            raise ConnectionFailedError("connection failed")
        return self._hand_over()

    def addr(self) -> Address:
        return Address(self.my_call, self.scheme)

    def _hand_over(self) -> VaraDataConn:
        with self.lock:
            if self.data_conn is None:
                raise ConnectionFailedError("link dropped before the data port could be handed over")
            return VaraDataConn(self.data_conn, self)

    # ------------- Teardown -------------

    def close(self):
        """
        Close the RF link and both TCP ports. Blocks until VARA confirms the
        disconnect or disconnect_timeout elapses, in which case ABORT is sent.
        """
        try:
            if self.state is ConnectionState.CONNECTED:
                self._notifier.discard()
                sub = self._notifier.subscribe()
                if self.transport.connected:
                    try:
                        self._send("DISCONNECT")
                    except Exception:
                        sub.cancel()
                        raise

                res = sub.wait(timeout=self.disconnect_timeout)
                if res is not ConnectionState.DISCONNECTED:
                    if res is None:
                        self.logger.warning(
                            f"[VARA] No DISCONNECTED after {self.disconnect_timeout:.1f}s, aborting!"
                        )
                    else:
                        self.logger.warning("[VARA] Disconnect failed, aborting!")
                    if self.transport.connected:
                        self._send("ABORT")
        finally:
            # Make sure to stop TX (should have already happened, this is a backup)
            self._send_ptt(False)
            self._teardown()

    def _teardown(self):
        """Stop the reader, close both ports and reset the session fields."""
        self.transport.disconnect()
        with self.lock:
            close_tcp("data", self.data_conn)
            self.data_conn = None
            if self.state is ConnectionState.CONNECTED:
                self.logger.info(f"[STATE] Disconnected from {self.remote_call or 'remote station'}")
            self.remote_call = ""
            self._busy = False
            self._notifier.discard()
            # Last, so anyone polling state sees the other fields already reset.
            self.state = ConnectionState.DISCONNECTED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------- Queries -------------

    def busy(self) -> bool:
        """True if the channel is not clear."""
        return self._busy

    def ping(self) -> bool:
        """True while the command port is open and its reader is running."""
        return self.transport.connected and self.transport.listening

    def set_ptt(self, ptt: Optional[PTTController]):
        """
        Inject the PTT controller (probably hooked to a transceiver).

        If None, PTT requests from VARA are ignored. VOX may still work.
        """
        self._ptt = ptt or NullPTTController()

    # ------------- Parser callbacks -------------

    def _on_ptt(self, on: bool):
        if self.debug:
            self.logger.debug(f"[PTT] {'ON' if on else 'OFF'}")
        self._send_ptt(on)

    def _send_ptt(self, on: bool):
        try:
            self._ptt.set_ptt(on)
        except Exception as e:
            self.logger.warning(f"[PTT] Controller failed to set PTT {'ON' if on else 'OFF'}: {e}")

    def _on_busy(self, busy: bool):
        self._busy = busy

    def _on_connected(self, tokens: list):
        with self.lock:
            self.state = ConnectionState.CONNECTED
            if not self.remote_call:
                self.remote_call = self._remote_from(tokens)
            self.logger.info(f"[STATE] Connected to {self.remote_call or 'unknown station'}")
        self._notifier.publish(ConnectionState.CONNECTED)

    def _remote_from(self, tokens: list) -> str:
        """First call-sign token of a CONNECTED line that is not our own."""
        mine = (self.my_call or "").upper()
        for tok in tokens:
            if tok.upper() != mine and not tok.isdigit():
                return tok
        return ""

    def _on_disconnected(self):
        self._teardown()
        self._notifier.publish(ConnectionState.DISCONNECTED)

    # ------------- Command helpers -------------

    def _send(self, command: str):
        self.transport.send_command(command)
