# modems/vara/__init__.py
"""
VARA HF/FM modem client package.

Exports:
- VaraModem (session: dial, listen/accept, close)
- VaraDataConn (stream handed out once a link is up)
- VaraParser (dispatch for command-port lines)
- VaraTransport (command-port TCP transport with reader thread)
- ModemConfig / load_modem_config
"""

from .client import VaraModem
from .config import ModemConfig, load_modem_config
from .conn import VaraDataConn
from .parser import VaraParser
from .transport import VaraTransport
from modem_registry import bandwidths

__version__ = "1.0.0"

__all__ = [
    "VaraModem",
    "VaraDataConn",
    "VaraParser",
    "VaraTransport",
    "ModemConfig",
    "load_modem_config",
    "bandwidths",
    "__version__",
]
