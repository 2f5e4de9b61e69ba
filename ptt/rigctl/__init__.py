# ptt/rigctl/__init__.py
"""
Hamlib rigctld PTT controller package.
Exports:
- RigctlPTT
- RigctlError
"""

from .client import RigctlPTT, RigctlError

__all__ = ["RigctlPTT", "RigctlError"]
