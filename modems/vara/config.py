# modems/vara/config.py
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from modem_interface import ModemConfigurationError

DEFAULT_HOST = "localhost"
DEFAULT_CMD_PORT = 8300


@dataclass(frozen=True)
class ModemConfig:
    """
    Where to reach the VARA modem program.

    Unset fields are back-filled by with_defaults(): host 'localhost',
    command port 8300, data port one above the command port (8301).
    """
    host: Optional[str] = None
    cmd_port: Optional[int] = None
    data_port: Optional[int] = None

    def with_defaults(self) -> "ModemConfig":
        host = self.host or DEFAULT_HOST
        cmd_port = int(self.cmd_port) if self.cmd_port else DEFAULT_CMD_PORT
        data_port = int(self.data_port) if self.data_port else cmd_port + 1
        for label, port in (("cmd_port", cmd_port), ("data_port", data_port)):
            if not (1 <= port <= 65535):
                raise ModemConfigurationError(f"{label} out of range (1-65535): {port}")
        return replace(self, host=host, cmd_port=cmd_port, data_port=data_port)


def load_modem_config(settings: Optional[Dict[str, Any]]) -> ModemConfig:
    """Build a ModemConfig from the 'vara' section of settings.yml."""
    section = (settings or {}).get("vara") or {}
    try:
        cmd_port = section.get("cmd_port")
        data_port = section.get("data_port")
        return ModemConfig(
            host=section.get("host"),
            cmd_port=int(cmd_port) if cmd_port is not None else None,
            data_port=int(data_port) if data_port is not None else None,
        ).with_defaults()
    except (TypeError, ValueError) as e:
        raise ModemConfigurationError(f"Invalid VARA port setting: {e}") from e
