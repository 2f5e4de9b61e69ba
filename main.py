# main.py
# Manual driver for a VARA modem, mainly for exercising the modems.vara package.
import argparse
import os
import sys
import time
import yaml
from pyfiglet import Figlet

from typing import Any, Callable, Dict, List, Optional, Tuple

from app_context import AppContext
from config_validation import ConfigValidationError, validate_vara_settings
from modem_interface import BaseModemError, ConnectionState, NullPTTController, PTTController
from modem_registry import MODEM_SCHEMES
from modems.vara import VaraModem, load_modem_config
from ptt.rigctl import RigctlPTT
from ui_status import status_show, status_clear, BG_GREEN, BG_RED
from utils import pretty_duration

PROGRAM_NAME = "VARA-Driver"

logger = None


def print_banner_safe(title: str = "VARA-DRIVER"):
    """Print a banner, but never crash if fonts are missing."""
    if os.getenv("NO_FIGLET") == "1":
        print("\n" + title + "\n")
        return
    for font in ("slant", "standard"):
        try:
            print(Figlet(font=font, width=120).renderText(title))
            return
        except Exception:
            continue
    print("\n" + title + "\n")


def graceful_exit(ctx: Optional[AppContext] = None, exit_code: int = 0) -> None:
    """Close the modem and PTT controller, then exit with exit_code."""
    if ctx is not None:
        try:
            if ctx.modem is not None:
                ctx.modem.close()
        except BaseModemError as e:
            logger and logger.debug(f"Modem close raised: {e}")
        try:
            if ctx.ptt is not None:
                ctx.ptt.close()
        except BaseModemError as e:
            logger and logger.debug(f"PTT close raised: {e}")
    status_clear()
    print("\n73 de " + PROGRAM_NAME)
    sys.exit(exit_code)


# -------------------------
# Config loaders
# -------------------------
def load_yaml_file(file_path: str) -> Dict[str, Any]:
    """Load a small YAML file into a dict; raise if not found."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class ConsolePTT(PTTController):
    """Shows keying on the status line and forwards it to the real controller."""

    def __init__(self, inner: Optional[PTTController] = None):
        self.inner = inner or NullPTTController()

    def set_ptt(self, on: bool) -> None:
        if on:
            status_show("TX", BG_RED)
        else:
            status_clear()
        self.inner.set_ptt(on)

    def close(self) -> None:
        self.inner.close()


def build_ptt(config: Dict[str, Any], debug: bool = False) -> PTTController:
    ptt_cfg = config.get("ptt") or {}
    ptt_type = (ptt_cfg.get("type") or "none").lower()
    if ptt_type == "rigctl":
        inner: PTTController = RigctlPTT(
            host=ptt_cfg.get("host", "localhost"),
            port=ptt_cfg.get("port", 4532),
            debug=debug,
        )
    else:
        inner = NullPTTController()
    return ConsolePTT(inner)


def build_modem(ctx: AppContext) -> VaraModem:
    defaults = ctx.config.get("defaults") or {}
    return VaraModem(
        ctx.scheme,
        ctx.mycall,
        load_modem_config(ctx.config),
        ptt=ctx.ptt,
        debug=ctx.debug_mode,
        disconnect_timeout=float(defaults.get("disconnect_timeout", 10.0)),
    )


# -------------------------
# Interactive commands
# -------------------------
def cmd_connect(ctx: AppContext, args: List[str]) -> str:
    if not args or len(args) > 3:
        return "c ToCall [BW] [p2p]"
    if ctx.modem.state is ConnectionState.CONNECTED:
        return "already connected, disconnect first"
    to_call = args[0]
    bw = args[1] if len(args) > 1 and args[1] != "p2p" else ctx.default_bandwidth
    p2p = "p2p" in args[1:]
    print(f"connecting to {to_call}...")
    t0 = time.time()
    try:
        ctx.conn = ctx.modem.dial(to_call, bandwidth=bw, p2p=p2p)
    except BaseModemError as e:
        return f"connect failed: {e}"
    status_show(f"CONNECTED  {to_call}", BG_GREEN)
    return f"connected in {pretty_duration(time.time() - t0)}"


def cmd_disconnect(ctx: AppContext, args: List[str]) -> str:
    if args:
        return "disconnect requires zero arguments"
    if ctx.conn is None or ctx.modem.state is not ConnectionState.CONNECTED:
        ctx.conn = None
        return "not connected"
    try:
        ctx.conn.close()
    except BaseModemError as e:
        return f"error disconnecting: {e}"
    finally:
        ctx.conn = None
        status_clear()
    return "disconnected"


def cmd_listen(ctx: AppContext, args: List[str]) -> str:
    if args:
        return "listen requires zero arguments"
    try:
        ctx.modem.listen()
    except BaseModemError as e:
        return f"listen failed: {e}"
    return f"listening as {ctx.modem.addr()}"


def cmd_accept(ctx: AppContext, args: List[str]) -> str:
    if args:
        return "accept requires zero arguments"
    print("waiting for an incoming connection...")
    try:
        ctx.conn = ctx.modem.accept()
    except BaseModemError as e:
        return f"accept failed: {e}"
    remote = ctx.conn.remote_address()
    status_show(f"CONNECTED  {remote}", BG_GREEN)
    return f"connected to {remote}"


def cmd_busy(ctx: AppContext, args: List[str]) -> str:
    return "channel busy" if ctx.modem.busy() else "channel clear"


COMMANDS: Dict[str, Tuple[str, Callable[[AppContext, List[str]], str]]] = {
    "c": ("connect to a remote station: c ToCall [BW] [p2p]", cmd_connect),
    "d": ("disconnect from the remote station", cmd_disconnect),
    "l": ("listen for incoming connections", cmd_listen),
    "a": ("accept the next incoming connection", cmd_accept),
    "b": ("show whether the channel is busy", cmd_busy),
}


def cmd_help(ctx: AppContext, args: List[str]) -> str:
    lines = ["h  prints this help message", "q  quit"]
    lines += [f"{name}  {text}" for name, (text, _) in COMMANDS.items()]
    return "\n".join(lines)


def dispatch(ctx: AppContext, line: str) -> Optional[str]:
    """Run one command line. Returns the text to print, or None to quit."""
    parts = line.split()
    if not parts:
        return ""
    name, args = parts[0].lower(), parts[1:]
    if name == "q":
        return None
    if name == "h":
        return cmd_help(ctx, args)
    entry = COMMANDS.get(name)
    if entry is None:
        return f"unknown command '{name}', type \"h\" for a list of options"
    return entry[1](ctx, args)


def run_cli(ctx: AppContext, input_fn: Callable[[str], str] = input) -> None:
    print('Type "h" for a list of options')
    while True:
        try:
            line = input_fn("cmd? ")
        except EOFError:
            return
        out = dispatch(ctx, line)
        if out is None:
            return
        if out:
            print(out)


def main() -> None:
    print_banner_safe("VARA-DRIVER")

    global logger
    parser = argparse.ArgumentParser(description=f"{PROGRAM_NAME}: manual driver for the VARA modem client")
    parser.add_argument("-c", "--mycall", help="the callsign of my station")
    parser.add_argument("--scheme", choices=sorted(MODEM_SCHEMES.keys()), help="VARA variant (default: varahf)")
    parser.add_argument("--config", default="settings.yml", help="YAML settings file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--clear-logs", action="store_true", help="Delete old log files and exit")
    args = parser.parse_args()

    if args.clear_logs:
        from loghandler import clear_old_logs
        clear_old_logs("logs")
        print("[logs] Old logs deleted.")
        sys.exit(0)

    debug_mode = args.debug or bool(os.getenv("VARA_DEBUG"))
    from loghandler import setup_logging
    logger, _ = setup_logging(log_dir="logs", debug=debug_mode)

    config: Dict[str, Any] = {}
    if os.path.exists(args.config):
        config = load_yaml_file(args.config)
    else:
        logger.info(f"No settings file at {args.config}; using defaults.")

    if not config.get("vara"):
        config["vara"] = {}
    vara_cfg = config["vara"]
    if args.scheme:
        vara_cfg["scheme"] = args.scheme
    validate_vara_settings(config, logger, mycall=args.mycall)

    ctx = AppContext(
        logger=logger,
        config=config,
        debug_mode=debug_mode,
        scheme=(vara_cfg.get("scheme") or "varahf").lower(),
        mycall=(args.mycall or vara_cfg.get("mycall")).upper(),
        default_bandwidth=str(vara_cfg["bandwidth"]) if vara_cfg.get("bandwidth") else None,
    )
    print(f"MyCall is {ctx.mycall} ({MODEM_SCHEMES[ctx.scheme]['label']})")

    try:
        ctx.ptt = build_ptt(config, debug=debug_mode)
        ctx.modem = build_modem(ctx)
        print("Ready")
        run_cli(ctx)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        if ctx.modem is not None:
            ctx.modem.close()
        raise
    graceful_exit(ctx)


def run() -> None:
    """Console entry point: main() with fatal errors mapped to exit code 1."""
    try:
        main()
    except ConfigValidationError as e:
        logger and logger.error(f"[CONFIG ERROR] {e}")
        sys.exit(1)
    except BaseModemError as e:
        logger and logger.error(f"[FATAL] Modem communication failed: {e}")
        sys.exit(1)
    except Exception as e:
        if logger:
            logger.exception("[FATAL] Unexpected error occurred")
        else:
            print(f"[FATAL] Unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
