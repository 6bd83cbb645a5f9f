"""Request/response envelopes exchanged with the storage backend.

A request carries exactly one operation bit. Its address is a bus address:
reads and programs move one bus word at a time, and a native storage word
spans ``lanes`` consecutive bus addresses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from nvmctrl.core.address_space import AddressSpace
from nvmctrl.core.exceptions import ProtocolError
from nvmctrl.core.flash_enums import FlashOp, Partition
from nvmctrl.core.trust import KeyMaterial
from nvmctrl.utils.consts import ConstUtils, width_mask


@dataclass(frozen=True)
class FlashRequest:
    req: bool = False
    rd: bool = False
    prog: bool = False
    pg_erase: bool = False
    bk_erase: bool = False
    part: Partition = Partition.DATA
    addr: int = 0
    prog_data: int = 0
    prog_last: bool = False
    scramble_en: bool = False
    addr_key: int = 0
    data_key: int = 0

    def __post_init__(self):
        ops = sum((self.rd, self.prog, self.pg_erase, self.bk_erase))
        if ops > 1:
            raise ProtocolError(
                "Request sets more than one operation bit",
                details={"rd": self.rd, "prog": self.prog,
                         "pg_erase": self.pg_erase, "bk_erase": self.bk_erase},
            )
        if self.req != (ops == 1):
            raise ProtocolError("Request valid must be set iff one operation bit is set")
        if self.prog_last and not self.prog:
            raise ProtocolError("prog_last is only meaningful on a program request")
        for name in ("addr_key", "data_key"):
            if not 0 <= getattr(self, name) <= ConstUtils.MASK_KEY:
                raise ProtocolError(f"{name} exceeds {ConstUtils.KEY_WIDTH} bits")
        if self.addr < 0 or self.prog_data < 0:
            raise ProtocolError("addr and prog_data must be non-negative")

    @property
    def op(self) -> FlashOp:
        if self.rd:
            return FlashOp.READ
        if self.prog:
            return FlashOp.PROGRAM
        if self.pg_erase:
            return FlashOp.PAGE_ERASE
        if self.bk_erase:
            return FlashOp.BANK_ERASE
        return FlashOp.NONE


IDLE_REQUEST = FlashRequest()


@dataclass(frozen=True)
class FlashResponse:
    rd_done: bool = False
    prog_done: bool = False
    erase_done: bool = False
    rd_data: int = 0
    init_busy: bool = False


@dataclass(frozen=True)
class Completion:
    """What a response says happened this step."""
    op: FlashOp
    data: Optional[int] = None
    busy: bool = False

    @property
    def done(self) -> bool:
        return self.op != FlashOp.NONE


class TransactionCodec:
    """Builds backend requests from authorized operations and decodes responses."""

    def __init__(self, address_space: AddressSpace):
        self.address_space = address_space
        self.bus_width = address_space.topology.bus_width

    def encode(
        self,
        op: FlashOp,
        partition: Partition,
        bank: int,
        page: int,
        word: int,
        payload: Optional[int] = None,
        scramble_en: bool = False,
        keys: Optional[KeyMaterial] = None,
        lane: int = 0,
        last: bool = True,
    ) -> FlashRequest:
        """Encode one operation into a request envelope.

        Keys are forwarded only when scrambling is on. With scrambling on and
        no keys given, the placeholder pair keeps the request deterministic.
        """
        op = FlashOp(op)
        if op == FlashOp.NONE:
            raise ProtocolError("Cannot encode a request for FlashOp.NONE")
        if op == FlashOp.PROGRAM:
            if payload is None:
                raise ProtocolError("Program request requires a payload word")
            if not 0 <= payload <= width_mask(self.bus_width):
                raise ProtocolError(
                    f"Payload 0x{payload:X} exceeds bus width {self.bus_width}"
                )
        elif payload is not None:
            raise ProtocolError(f"{op.name} request does not take a payload")

        addr = self.address_space.compose_bus(bank, page, word, lane)

        addr_key = data_key = 0
        if scramble_en:
            keys = keys or KeyMaterial.placeholder()
            addr_key, data_key = keys.addr_key, keys.data_key

        return FlashRequest(
            req=True,
            rd=op == FlashOp.READ,
            prog=op == FlashOp.PROGRAM,
            pg_erase=op == FlashOp.PAGE_ERASE,
            bk_erase=op == FlashOp.BANK_ERASE,
            part=Partition(partition),
            addr=addr,
            prog_data=payload or 0,
            prog_last=op == FlashOp.PROGRAM and last,
            scramble_en=scramble_en,
            addr_key=addr_key,
            data_key=data_key,
        )

    def encode_program_burst(
        self,
        partition: Partition,
        bank: int,
        page: int,
        word: int,
        payload_words: Sequence[int],
        scramble_en: bool = False,
        keys: Optional[KeyMaterial] = None,
        lane: int = 0,
    ) -> Iterator[FlashRequest]:
        """Yield one program request per bus word; prog_last marks the final one.

        A burst starts at (word, lane) and may not run past the end of the page.
        """
        if not payload_words:
            raise ProtocolError("Program burst must contain at least one word")
        topo = self.address_space.topology
        lanes = topo.lanes
        start = word * lanes + lane
        if start + len(payload_words) > topo.words_per_page * lanes:
            raise ProtocolError(
                "Program burst crosses a page boundary",
                details={"page": page, "start": start, "length": len(payload_words)},
            )

        last_idx = len(payload_words) - 1
        for idx, value in enumerate(payload_words):
            w, ln = divmod(start + idx, lanes)
            yield self.encode(
                FlashOp.PROGRAM, partition, bank, page, w,
                payload=value, scramble_en=scramble_en, keys=keys,
                lane=ln, last=idx == last_idx,
            )

    @staticmethod
    def decode(response: FlashResponse, issued: Optional[FlashOp] = None) -> Completion:
        """Turn response signals into a Completion.

        The backend has a single erase-done signal. Pass the issued op to
        report BANK_ERASE; otherwise an erase completion reads as PAGE_ERASE.
        """
        done = sum((response.rd_done, response.prog_done, response.erase_done))
        if done > 1:
            raise ProtocolError("Response asserts more than one done signal")
        if response.rd_done:
            return Completion(FlashOp.READ, data=response.rd_data, busy=response.init_busy)
        if response.prog_done:
            return Completion(FlashOp.PROGRAM, busy=response.init_busy)
        if response.erase_done:
            op = FlashOp.BANK_ERASE if issued == FlashOp.BANK_ERASE else FlashOp.PAGE_ERASE
            return Completion(op, busy=response.init_busy)
        return Completion(FlashOp.NONE, busy=response.init_busy)
