"""Authorization checks performed before scans touch protected areas.

The engine never asks the operating system for consent itself.  It is
handed a ``PermissionGate`` and only asks whether a capability is granted.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterable

from reclaim.core.errors import PermissionDenied

log = logging.getLogger(__name__)


class Capability(str, Enum):
    FULL_DISK_ACCESS = "full_disk_access"
    TRASH_ACCESS = "trash_access"


class PermissionGate(ABC):
    """Answers whether the process may use a capability."""

    @abstractmethod
    def is_authorized(self, capability: Capability) -> bool:
        """Return True if *capability* is granted."""


class StaticPermissionGate(PermissionGate):
    """Gate with a fixed set of granted capabilities."""

    def __init__(self, granted: Iterable[Capability] = tuple(Capability)) -> None:
        self.granted = frozenset(granted)

    def is_authorized(self, capability: Capability) -> bool:
        return capability in self.granted


def is_root() -> bool:
    """Check if the current process is running as root."""
    return hasattr(os, "geteuid") and os.geteuid() == 0


class FilesystemPermissionGate(PermissionGate):
    """Probes the filesystem to decide whether access is granted.

    A capability is granted when every existing probe directory can be
    listed.  Missing probe directories do not count against it.
    """

    def __init__(self, probes: dict[Capability, list[Path]] | None = None) -> None:
        self.probes = probes if probes is not None else {}

    def is_authorized(self, capability: Capability) -> bool:
        if is_root():
            return True
        for probe in self.probes.get(capability, []):
            if not probe.exists():
                continue
            if not os.access(probe, os.R_OK | os.X_OK):
                log.warning("No access to %s, %s not granted", probe, capability.value)
                return False
        return True


def require(gate: PermissionGate, capability: Capability) -> None:
    """Raise ``PermissionDenied`` unless *gate* grants *capability*."""
    if not gate.is_authorized(capability):
        raise PermissionDenied(capability.value)
