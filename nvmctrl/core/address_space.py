"""Flash address space arithmetic.

A native flash address is the concatenation {bank, page, word}, most
significant field first. The bus is narrower than a storage word, so a bus
address appends a lane index below the word: {bank, page, word, lane}.
Every function here is pure; the only state is the immutable geometry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from nvmctrl.core.exceptions import AddressOutOfRangeError
from nvmctrl.utils.config_loader import FlashTopology
from nvmctrl.utils.consts import clog2


@dataclass(frozen=True)
class PageRange:
    """An immutable range of pages, in page units."""
    base: int
    size: int

    def contains(self, page: int) -> bool:
        return self.base <= page < self.base + self.size

    @property
    def end(self) -> int:
        return self.base + self.size

    def __str__(self) -> str:
        return f"pages {self.base}..{self.base + self.size - 1}"


class NativeAddress(NamedTuple):
    bank: int
    page: int
    word: int


class BusAddress(NamedTuple):
    bank: int
    page: int
    word: int
    lane: int


class AddressSpace:
    """Decomposes and composes flash addresses for a given geometry.

    Field widths are the ceiling log2 of the configured counts. Components
    are checked against the counts themselves, so a non power-of-two page
    count still rejects the unused encodings of its field.
    """

    def __init__(self, topology: FlashTopology):
        self.topology = topology
        self.bank_width = clog2(topology.num_banks)
        self.page_width = clog2(topology.pages_per_bank)
        self.word_width = clog2(topology.words_per_page)
        self.lane_width = clog2(topology.lanes)

    @property
    def address_width(self) -> int:
        """Width of a native (storage word) address."""
        return self.bank_width + self.page_width + self.word_width

    @property
    def bus_address_width(self) -> int:
        """Width of a bus address."""
        return self.address_width + self.lane_width

    def compose(self, bank: int, page: int, word: int) -> int:
        """Return the flat native address of (bank, page, word)."""
        self._check("bank", bank, self.topology.num_banks)
        self._check("page", page, self.topology.pages_per_bank)
        self._check("word", word, self.topology.words_per_page)
        return (
            (bank << (self.page_width + self.word_width))
            | (page << self.word_width)
            | word
        )

    def decompose(self, address: int) -> NativeAddress:
        """Split a flat native address into (bank, page, word)."""
        self._check("address", address, 1 << self.address_width)
        word = address & ((1 << self.word_width) - 1)
        page = (address >> self.word_width) & ((1 << self.page_width) - 1)
        bank = address >> (self.word_width + self.page_width)
        # Unused encodings of a non power-of-two field
        self._check("bank", bank, self.topology.num_banks)
        self._check("page", page, self.topology.pages_per_bank)
        self._check("word", word, self.topology.words_per_page)
        return NativeAddress(bank, page, word)

    def compose_bus(self, bank: int, page: int, word: int, lane: int = 0) -> int:
        """Return the bus address of one lane of (bank, page, word)."""
        native = self.compose(bank, page, word)
        return self.to_bus(native, lane)

    def decompose_bus(self, bus_address: int) -> BusAddress:
        """Split a bus address into (bank, page, word, lane)."""
        native, lane = self.to_native(bus_address)
        bank, page, word = self.decompose(native)
        return BusAddress(bank, page, word, lane)

    def to_bus(self, address: int, lane: int = 0) -> int:
        """Convert a native address plus lane into a bus address."""
        self._check("address", address, 1 << self.address_width)
        self._check("lane", lane, self.topology.lanes)
        return (address << self.lane_width) | lane

    def to_native(self, bus_address: int) -> tuple[int, int]:
        """Convert a bus address into (native address, lane)."""
        self._check("bus_address", bus_address, 1 << self.bus_address_width)
        lane = bus_address & ((1 << self.lane_width) - 1)
        self._check("lane", lane, self.topology.lanes)
        return bus_address >> self.lane_width, lane

    def page_of(self, address: int) -> int:
        """Global data page index (bank * pages_per_bank + page) of an address."""
        bank, page, _ = self.decompose(address)
        return bank * self.topology.pages_per_bank + page

    @staticmethod
    def _check(field: str, value: int, limit: int) -> None:
        if not 0 <= value < limit:
            raise AddressOutOfRangeError(field, value, limit)
