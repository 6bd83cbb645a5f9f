"""Backend channel and an in-memory reference backend.

BackendChannel enforces one transaction in flight per channel. MemoryBackend
stands in for the physical flash in tests and tools: erased cells read as
all ones, programming can only clear bits, and every request completes on
the step after it is accepted.
"""

from __future__ import annotations

import logging
from typing import Optional

from nvmctrl.core.address_space import AddressSpace
from nvmctrl.core.exceptions import BackendBusyError, ProtocolError
from nvmctrl.core.flash_enums import FlashOp, Partition
from nvmctrl.core.transaction import Completion, FlashRequest, FlashResponse, TransactionCodec
from nvmctrl.interfaces.backend import StorageBackend
from nvmctrl.utils.consts import width_mask

logger = logging.getLogger(__name__)


class MemoryBackend(StorageBackend):
    """Sparse bus-word storage; missing entries are erased."""

    def __init__(self, address_space: AddressSpace):
        self.address_space = address_space
        self.topology = address_space.topology
        self.erased_word = width_mask(self.topology.bus_width)
        self.initializing = False
        self._cells: dict[tuple[Partition, int], int] = {}
        self._pending: Optional[FlashRequest] = None

    @property
    def busy(self) -> bool:
        return self.initializing

    def accept(self, request: FlashRequest) -> None:
        if not request.req:
            raise ProtocolError("Backend accepts only valid requests")
        if self._pending is not None:
            raise BackendBusyError(details={"pending": self._pending.op.name})
        self._pending = request

    def step(self) -> FlashResponse:
        if self.initializing:
            return FlashResponse(init_busy=True)
        request, self._pending = self._pending, None
        if request is None:
            return FlashResponse()

        if request.rd:
            return FlashResponse(rd_done=True, rd_data=self.read_word(request.part, request.addr))
        if request.prog:
            self._program(request)
            return FlashResponse(prog_done=True)
        self._erase(request)
        return FlashResponse(erase_done=True)

    def reset(self) -> None:
        """Drop the pending request. Stored contents are non-volatile."""
        self._pending = None

    def read_word(self, partition: Partition, bus_address: int) -> int:
        return self._cells.get((Partition(partition), bus_address), self.erased_word)

    def load(self, partition: Partition, bus_address: int, value: int) -> None:
        """Preset a cell, bypassing program semantics."""
        self._cells[(Partition(partition), bus_address)] = value & self.erased_word

    # Private helpers -------------------------------------------------------

    def _program(self, request: FlashRequest) -> None:
        key = (request.part, request.addr)
        # Flash cells can only go from 1 to 0 without an erase
        self._cells[key] = self.read_word(request.part, request.addr) & request.prog_data

    def _erase(self, request: FlashRequest) -> None:
        bank, page, _, _ = self.address_space.decompose_bus(request.addr)
        for part, addr in list(self._cells):
            if part != request.part:
                continue
            cell = self.address_space.decompose_bus(addr)
            if cell.bank != bank:
                continue
            if request.bk_erase or cell.page == page:
                del self._cells[(part, addr)]
        logger.debug(
            f"{request.op.name} {request.part.name} bank={bank}"
            + ("" if request.bk_erase else f" page={page}")
        )


class BackendChannel:
    """One backend channel with at most one transaction in flight."""

    def __init__(self, backend: StorageBackend, codec: TransactionCodec):
        self.backend = backend
        self.codec = codec
        self._in_flight: Optional[FlashRequest] = None

    @property
    def in_flight(self) -> Optional[FlashRequest]:
        return self._in_flight

    @property
    def busy(self) -> bool:
        return self._in_flight is not None or self.backend.busy

    def submit(self, request: FlashRequest) -> None:
        """Hand a request to the backend.

        Raises:
            BackendBusyError: a transaction is in flight or the backend is initializing
        """
        if self.busy:
            raise BackendBusyError(
                details={"in_flight": self._in_flight.op.name if self._in_flight else None,
                         "backend_busy": self.backend.busy}
            )
        self.backend.accept(request)
        self._in_flight = request

    def poll(self) -> Completion:
        """Step the backend once and report what completed, if anything."""
        issued = self._in_flight.op if self._in_flight else None
        completion = self.codec.decode(self.backend.step(), issued=issued)
        if completion.done:
            if self._in_flight is None:
                raise ProtocolError(f"Backend completed {completion.op.name} with nothing in flight")
            self._in_flight = None
        return completion

    def poll_until_done(self, max_steps: int = 16) -> Completion:
        """Poll up to max_steps times; returns the last completion seen."""
        completion = Completion(FlashOp.NONE, busy=self.backend.busy)
        for _ in range(max_steps):
            completion = self.poll()
            if completion.done:
                break
        return completion

    def reset(self) -> None:
        self.backend.reset()
        self._in_flight = None
