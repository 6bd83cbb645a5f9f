"""Rule provider interface - where protection rules come from.

The hardware owns a fixed rule set today. Software-configurable rule
sources may be added later; every source implements RuleProvider and the
policy table ORs their grants together. A provider can only add access,
never take it away.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from nvmctrl.core.policy import DataRegionRule, InfoPageRule


class RuleProvider(ABC):
    """A source of info page and data region rules."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and descriptions."""
        ...

    @abstractmethod
    def info_rules(self) -> Sequence[InfoPageRule]:
        """Rules for the info partition, in priority-free order."""
        ...

    @abstractmethod
    def data_rules(self) -> Sequence[DataRegionRule]:
        """Rules for the data partition, in priority-free order."""
        ...
