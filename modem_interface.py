# modem_interface.py

"""
VARA client modem interface contract — errors, addresses and PTT keying

This module defines the small set of types shared by the modem session, its
connection facade and the driver. It also documents how transmitter keying
(PTT) is handed off to the outside world.

PTT KEYING
   --------------------------------------------------------------
   What it is:
     The modem program decides when the transmitter must be keyed and
     reports it on the command channel as 'PTT ON' / 'PTT OFF'. The client
     does not touch any radio itself; it forwards each event to an injected
     controller:
       • set_ptt(True)   -> key the transmitter
       • set_ptt(False)  -> unkey the transmitter

   How to implement:
     - Subclass PTTController and implement set_ptt().
     - Hamlib users can use ptt.rigctl.RigctlPTT, which sends 'T 1' / 'T 0'
       to a running rigctld.
     - Leave the controller unset (or pass None) when VOX or the modem
       program itself keys the radio; NullPTTController is used then.

   Call semantics (contract):
     • set_ptt() is called once per PTT event received from the modem.
     • set_ptt(False) is called once more, unconditionally, when the
       session is closed, so a lost 'PTT OFF' never leaves the rig keyed.
     • Controller errors are logged by the session and never stop the
       command reader.

ERRORS
------
BaseModemError is the superclass for everything the modem client raises.
Configuration errors are raised before any network I/O, so a caller can
always tell a typo from a dead modem program.

Developer checklist for new PTT controllers
-------------------------------------------
[ ] Implement set_ptt(on)
[ ] Make set_ptt(False) safe to call when the rig is already unkeyed
[ ] OPTIONAL: implement close() to release transports
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class BaseModemError(Exception):
    """Generic modem communication error (superclass for all modem errors)."""
    pass

class ModemConfigurationError(BaseModemError):
    """Raised for unsupported settings (bandwidth, scheme, ports) before any I/O."""
    pass

class ModemConnectError(BaseModemError):
    """Raised when the command or data TCP port cannot be reached."""
    pass

class ConnectionFailedError(BaseModemError):
    """Raised when the modem reports DISCONNECTED instead of CONNECTED."""
    pass

class ModemWriteError(BaseModemError):
    """Raised when a command cannot be written to the command port."""
    pass

class ModemStateError(BaseModemError):
    """Raised when dial/listen is attempted on an already connected session."""
    pass

class UnsupportedSchemeError(BaseModemError):
    """Raised when a URL names a scheme other than the session's."""
    pass


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass(frozen=True)
class Address:
    """One end of a link: call sign plus the scheme it is reached over."""
    call: str
    scheme: str

    def network(self) -> str:
        return self.scheme

    def __str__(self) -> str:
        return self.call


class PTTController(ABC):
    @abstractmethod
    def set_ptt(self, on: bool) -> None:
        """Key (True) or unkey (False) the transmitter."""
    ...

    def close(self) -> None:
        """Optional cleanup for transports held by the controller."""
        pass


class NullPTTController(PTTController):
    """Ignores keying requests. Used when no controller is injected."""

    def set_ptt(self, on: bool) -> None:
        pass
