"""Storage backend interface.

The backend is the physical read/program/erase sequencer. Its timing is
outside this model: a request is accepted, and some later step reports
completion through the response envelope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nvmctrl.core.transaction import FlashRequest, FlashResponse


class StorageBackend(ABC):
    """Anything that executes FlashRequest envelopes."""

    @property
    @abstractmethod
    def busy(self) -> bool:
        """True while the backend cannot accept a request (e.g. during init)."""
        ...

    @abstractmethod
    def accept(self, request: FlashRequest) -> None:
        """Latch a request. Only called when no transaction is in flight."""
        ...

    @abstractmethod
    def step(self) -> FlashResponse:
        """Advance the backend by one step and return its response signals."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop any pending request and return to the idle state."""
        ...
