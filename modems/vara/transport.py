import socket
import threading
from typing import Callable, List, Optional, Tuple

from loghandler import get_logger, get_traffic_logger
from modem_interface import ModemConnectError, ModemWriteError


def _apply_tcp_options(s: socket.socket):
    """Best-effort low-latency + keepalive socket options."""
    try:
        s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    except OSError:
        pass
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    except OSError:
        pass


def open_tcp(name: str, host: str, port: int, timeout: float = 5.0) -> socket.socket:
    """
    Connect one of the VARA TCP ports ('command' or 'data').

    Raises ModemConnectError naming the port on resolve/connect failure.
    The returned socket is left in blocking mode.
    """
    logger = get_logger()
    logger.debug(f"[NET] Connecting {name} TCP port {host}:{port}")
    try:
        s = socket.create_connection((host, int(port)), timeout=timeout)
    except socket.gaierror as e:
        logger.error(f"[NET] Couldn't resolve VARA {name} address {host}:{port}: {e}")
        raise ModemConnectError(f"couldn't resolve VARA {name} address: {e}") from e
    except OSError as e:
        logger.error(f"[NET] Couldn't connect to VARA {name} port {host}:{port}: {e}")
        raise ModemConnectError(f"couldn't connect to VARA {name} port: {e}") from e
    _apply_tcp_options(s)
    s.settimeout(None)
    return s


def close_tcp(name: str, s: Optional[socket.socket]) -> None:
    """Shut down and close a socket; None is accepted and ignored."""
    if s is None:
        return
    try:
        s.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    s.close()
    get_logger().debug(f"[NET] Disconnected {name} TCP port")


def split_lines(buffer: bytes, chunk: bytes) -> Tuple[List[str], bytes]:
    """
    Append chunk to buffer and split on '\\r'.

    Returns the complete non-empty lines and the unterminated remainder,
    which the caller passes back in with the next chunk.
    """
    *lines, rest = (buffer + chunk).split(b"\r")
    return [ln.decode(errors="replace").strip("\n") for ln in lines if ln.strip(b"\n")], rest


class VaraTransport:
    """
    TCP transport for the VARA command port (CR-terminated ASCII lines).

    Responsibilities:
      - Open/close the command socket.
      - Own the reader thread that splits the stream on '\\r', drops empty
        fragments and hands each line to the line callback.
      - Serialize outgoing commands.

    The line callback returns False to stop the reader (DISCONNECTED).
    This class knows nothing about connection state; that is the session's
    job.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = 5.0,
        recv_timeout: float = 0.5,
        debug: bool = False,
        line_callback: Optional[Callable[[str], bool]] = None,
    ):
        self.host = host
        self.port = int(port)
        self.connect_timeout = float(connect_timeout)
        self.recv_timeout = float(recv_timeout)
        self.debug = debug

        self._logger = get_logger()
        self._traffic = get_traffic_logger()
        self._sock: Optional[socket.socket] = None
        self._sock_lock = threading.Lock()

        self._listener: Optional[threading.Thread] = None
        self._stop_evt = threading.Event()

        self._line_cb = line_callback

    # ---------- Public properties ----------

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def listening(self) -> bool:
        return self._listener is not None and self._listener.is_alive()

    # ---------- TCP setup ----------

    def connect(self):
        """Open the command socket. No-op if it is already open."""
        if self._sock is not None:
            return
        s = open_tcp("command", self.host, self.port, timeout=self.connect_timeout)
        # Short read timeout keeps the reader responsive to stop requests.
        s.settimeout(self.recv_timeout)
        with self._sock_lock:
            self._sock = s

    def start_listener(self):
        """
        Start a reader for the current socket unless one is already running.

        Each reader gets its own socket and stop event, so a previous reader
        that outlived its join timeout can never pick up the new socket.
        """
        if self.listening or self._sock is None:
            return
        self._stop_evt = threading.Event()
        self._listener = threading.Thread(
            target=self._listener_loop,
            args=(self._sock, self._stop_evt),
            name="vara-cmd-reader",
            daemon=True,
        )
        self._listener.start()

    def disconnect(self):
        """Stop the reader, join it (unless called from it) and close the socket."""
        self._stop_evt.set()
        with self._sock_lock:
            s = self._sock
            self._sock = None
        close_tcp("command", s)

        t = self._listener
        if t is not None and t is not threading.current_thread() and t.is_alive():
            t.join(timeout=1.0)
            if t.is_alive():
                self._logger.warning("[NET] Command reader did not stop within 1.0s")
        self._listener = None

    close = disconnect

    # ---------- Line I/O ----------

    def send_command(self, command: str) -> None:
        """Write '<command>\\r'. Failures raise ModemWriteError, never retried."""
        with self._sock_lock:
            s = self._sock
            if s is None:
                raise ModemWriteError(f"Command port is not connected (cmd='{command}')")
            if self.debug:
                self._logger.debug(f"[SEND] {command}")
            self._traffic.info(f"> {command}")
            try:
                s.sendall((command + "\r").encode())
            except OSError as e:
                self._logger.error(f"[NET] Failed to send command '{command}': {e}")
                raise ModemWriteError(f"Failed to send command '{command}': {e}") from e

    def _drop_socket(self, s: socket.socket):
        """Forget a socket the peer closed, so the next connect() opens a fresh one."""
        with self._sock_lock:
            if self._sock is s:
                self._sock = None
        close_tcp("command", s)

    def _listener_loop(self, s: socket.socket, stop: threading.Event):
        """Read CR-terminated lines from s and hand them to the callback."""
        buf = b""
        while not stop.is_set() and self._sock is s:
            try:
                chunk = s.recv(1 << 16)
            except socket.timeout:
                continue
            except ConnectionError as e:
                if not stop.is_set():
                    self._logger.warning(f"[NET] Command port closed: {e}")
                    self._drop_socket(s)
                return
            except OSError as e:
                if stop.is_set() or self._sock is not s:
                    return
                self._logger.error(f"[NET] Command reader error: {e}")
                stop.wait(0.1)
                continue

            if not chunk:
                # VARA program killed?
                if not stop.is_set():
                    self._logger.warning("[NET] Command port closed by VARA")
                    self._drop_socket(s)
                return

            lines, buf = split_lines(buf, chunk)
            for line in lines:
                if stop.is_set():
                    return
                if self.debug:
                    self._logger.debug(f"[RECV] {line}")
                self._traffic.info(f"< {line}")
                if not self._line_cb:
                    continue
                try:
                    keep_going = self._line_cb(line)
                except Exception as e:
                    # Handler bugs should not kill the reader.
                    self._logger.error(f"[PARSER] callback failed on '{line}': {e}")
                    continue
                if keep_going is False:
                    return
