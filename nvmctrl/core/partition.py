"""Partition taxonomy and extents.

The flash is split into one data partition and one kind of info
partition. Each bank carries its own copy of every partition, so a page
is identified by (partition, bank, page-in-bank).
"""

from __future__ import annotations

from dataclasses import dataclass

from nvmctrl.core.exceptions import AddressOutOfRangeError
from nvmctrl.core.flash_enums import Partition
from nvmctrl.utils.config_loader import FlashTopology


@dataclass(frozen=True)
class PartitionInfo:
    """Static description of one partition kind."""
    partition: Partition
    pages_per_bank: int

    @property
    def end_address(self) -> int:
        """Last valid page index within a bank."""
        return self.pages_per_bank - 1


class PartitionModel:
    """Classifies pages by partition and bounds-checks them."""

    # Info partition kinds in this controller; extend alongside Partition
    INFO_TYPES = 1

    def __init__(self, topology: FlashTopology):
        self.topology = topology
        self._partitions: dict[Partition, PartitionInfo] = {
            Partition.DATA: PartitionInfo(Partition.DATA, topology.pages_per_bank),
            Partition.INFO: PartitionInfo(Partition.INFO, topology.info_pages_per_bank),
        }

    @property
    def partition_count(self) -> int:
        return 1 + self.INFO_TYPES

    def partition_for(self, partition: Partition) -> PartitionInfo:
        return self._partitions[Partition(partition)]

    def total_pages(self, partition: Partition) -> int:
        """Pages of this partition summed over every bank."""
        return self.partition_for(partition).pages_per_bank * self.topology.num_banks

    def is_valid_page(self, partition: Partition, bank: int, page: int) -> bool:
        if not 0 <= bank < self.topology.num_banks:
            return False
        return 0 <= page <= self.partition_for(partition).end_address

    def check_page(self, partition: Partition, bank: int, page: int) -> None:
        """Raise AddressOutOfRangeError unless the page exists."""
        if not 0 <= bank < self.topology.num_banks:
            raise AddressOutOfRangeError("bank", bank, self.topology.num_banks)
        info = self.partition_for(partition)
        if not 0 <= page <= info.end_address:
            raise AddressOutOfRangeError(
                f"{info.partition.name.lower()}_page", page, info.pages_per_bank
            )

    def global_page(self, partition: Partition, bank: int, page: int) -> int:
        """Page index spanning all banks: bank * pages_per_bank + page."""
        self.check_page(partition, bank, page)
        return bank * self.partition_for(partition).pages_per_bank + page

    def describe(self) -> dict:
        """Return a human-readable description of the partition layout."""
        return {
            info.partition.name.lower(): {
                "pages_per_bank": info.pages_per_bank,
                "end_address": info.end_address,
                "total_pages": self.total_pages(info.partition),
            }
            for info in self._partitions.values()
        }
