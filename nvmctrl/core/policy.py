"""Phase-gated memory protection policy.

Two independent rule sets guard the flash:

- info page rules: (page, phase) -> permitted operations
- data region rules: (phase, page range) -> permitted operations

For a given request and phase every matching rule from every provider is
ORed together. No match means no access. NONE and INVALID phases match
nothing, whatever the tables contain.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from functools import reduce
from typing import Iterable, Iterator, Optional, Sequence

from nvmctrl.core.address_space import PageRange
from nvmctrl.core.exceptions import ConfigurationError
from nvmctrl.core.flash_enums import DenyReason, FlashOp, Partition, Phase
from nvmctrl.core.partition import PartitionModel
from nvmctrl.interfaces.rule_provider import RuleProvider
from nvmctrl.utils.config_loader import ControllerConfig, DataRuleConfig, InfoRuleConfig


@dataclass(frozen=True)
class PermittedOps:
    """Permission bits of one rule.

    ``en`` gates the whole entry: an operation bit without ``en`` grants
    nothing.
    """

    en: bool = False
    rd_en: bool = False
    prog_en: bool = False
    page_erase_en: bool = False
    bank_erase_en: bool = False

    def __or__(self, other: PermittedOps) -> PermittedOps:
        if not isinstance(other, PermittedOps):
            return NotImplemented
        return PermittedOps(
            **{f.name: getattr(self, f.name) or getattr(other, f.name) for f in fields(self)}
        )

    def allows(self, op: FlashOp) -> bool:
        if not self.en:
            return False
        if op == FlashOp.READ:
            return self.rd_en
        if op == FlashOp.PROGRAM:
            return self.prog_en
        if op == FlashOp.PAGE_ERASE:
            return self.page_erase_en
        if op == FlashOp.BANK_ERASE:
            return self.bank_erase_en
        return False

    @classmethod
    def granting(cls, ops: Iterable[FlashOp], enabled: bool = True) -> PermittedOps:
        """Build the bits for a set of allowed operations."""
        ops = set(ops)
        return cls(
            en=enabled,
            rd_en=FlashOp.READ in ops,
            prog_en=FlashOp.PROGRAM in ops,
            page_erase_en=FlashOp.PAGE_ERASE in ops,
            bank_erase_en=FlashOp.BANK_ERASE in ops,
        )


NO_ACCESS = PermittedOps()


@dataclass(frozen=True)
class InfoPageRule:
    """Grant on one info page (index spanning all banks) for one phase."""
    page: int
    phase: Phase
    cfg: PermittedOps


@dataclass(frozen=True)
class DataRegionRule:
    """Grant on a range of data pages for one phase. size == 0 is no region."""
    phase: Phase
    cfg: PermittedOps
    base: int
    size: int

    @property
    def region(self) -> PageRange:
        return PageRange(self.base, self.size)


@dataclass(frozen=True)
class AccessRequest:
    """An operation on one location, before authorization."""
    op: FlashOp
    partition: Partition
    bank: int
    page: int
    word: int = 0
    lane: int = 0

    def __post_init__(self):
        # Plain ints are accepted; store the enum members
        object.__setattr__(self, "op", FlashOp(self.op))
        object.__setattr__(self, "partition", Partition(self.partition))


@dataclass(frozen=True)
class AuthorizationResult:
    """Permitted, or Denied with a reason. Truthy only when permitted."""
    permitted: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def permit(cls) -> AuthorizationResult:
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> AuthorizationResult:
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.permitted

    def __str__(self) -> str:
        if self.permitted:
            return "Permitted"
        assert self.reason is not None
        return f"Denied({self.reason.name.lower()})"


class StaticRuleProvider(RuleProvider):
    """A fixed list of rules, e.g. a software-owned rule source."""

    def __init__(
        self,
        name: str,
        info_rules: Sequence[InfoPageRule] = (),
        data_rules: Sequence[DataRegionRule] = (),
    ):
        self._name = name
        self._info = tuple(info_rules)
        self._data = tuple(data_rules)

    @property
    def name(self) -> str:
        return self._name

    def info_rules(self) -> Sequence[InfoPageRule]:
        return self._info

    def data_rules(self) -> Sequence[DataRegionRule]:
        return self._data


class HardwareRuleProvider(StaticRuleProvider):
    """The hardware-owned rule set, built once from configuration."""

    def __init__(self, config: ControllerConfig):
        super().__init__(
            "hardware",
            info_rules=[self._info_from_config(r) for r in config.info_rules],
            data_rules=[self._data_from_config(r) for r in config.data_rules],
        )

    @staticmethod
    def _info_from_config(rule: InfoRuleConfig) -> InfoPageRule:
        return InfoPageRule(rule.page, rule.phase, PermittedOps.granting(rule.allow, rule.enabled))

    @staticmethod
    def _data_from_config(rule: DataRuleConfig) -> DataRegionRule:
        return DataRegionRule(
            rule.phase, PermittedOps.granting(rule.allow, rule.enabled), rule.base, rule.size
        )


def coerce_phase(phase) -> Phase:
    """Map any phase input onto Phase; undecodable values become INVALID."""
    try:
        return Phase(phase)
    except ValueError:
        return Phase.INVALID


class PhasePolicyTable:
    """Evaluates protection rules for a request and a life-cycle phase.

    Rules from every provider are snapshotted and validated at construction.
    The table is immutable afterwards; evaluation never caches a decision.
    """

    def __init__(self, partitions: PartitionModel, providers: Sequence[RuleProvider]):
        self.partitions = partitions
        self.provider_names = tuple(p.name for p in providers)

        info: list[InfoPageRule] = []
        data: list[DataRegionRule] = []
        for provider in providers:
            for rule in provider.info_rules():
                self._validate_info_rule(rule, provider.name)
                info.append(rule)
            for rule in provider.data_rules():
                self._validate_data_rule(rule, provider.name)
                data.append(rule)
        self._info_rules = tuple(info)
        self._data_rules = tuple(data)

    @property
    def info_rules(self) -> tuple[InfoPageRule, ...]:
        return self._info_rules

    @property
    def data_rules(self) -> tuple[DataRegionRule, ...]:
        return self._data_rules

    def info_permitted_ops(self, page: int, phase: Phase) -> PermittedOps:
        """OR of every info rule for (page, phase); NO_ACCESS when none match."""
        return reduce(lambda acc, rule: acc | rule.cfg, self._match_info(page, phase), NO_ACCESS)

    def data_permitted_ops(self, page: int, phase: Phase) -> PermittedOps:
        """OR of every data region rule covering page in phase; NO_ACCESS when none match."""
        return reduce(lambda acc, rule: acc | rule.cfg, self._match_data(page, phase), NO_ACCESS)

    def permitted_ops(self, request: AccessRequest, phase: Phase) -> PermittedOps:
        page = self.partitions.global_page(request.partition, request.bank, request.page)
        if request.partition == Partition.INFO:
            return self.info_permitted_ops(page, phase)
        return self.data_permitted_ops(page, phase)

    def authorize(self, request: AccessRequest, phase: Phase) -> AuthorizationResult:
        """Grant or deny request in phase.

        Raises AddressOutOfRangeError for pages that do not exist; every
        in-range request gets a Permitted or Denied value.
        """
        page = self.partitions.global_page(request.partition, request.bank, request.page)
        phase = coerce_phase(phase)
        if not phase.is_active:
            return AuthorizationResult.deny(DenyReason.INVALID_PHASE)

        if request.partition == Partition.INFO:
            matches = list(self._match_info(page, phase))
        else:
            matches = list(self._match_data(page, phase))
        if not matches:
            return AuthorizationResult.deny(DenyReason.PHASE_MISMATCH)

        cfg = reduce(lambda acc, rule: acc | rule.cfg, matches, NO_ACCESS)
        if not cfg.allows(FlashOp(request.op)):
            return AuthorizationResult.deny(DenyReason.OP_NOT_PERMITTED)
        return AuthorizationResult.permit()

    def describe(self) -> dict:
        """Return a human-readable dump of the live rule set."""
        return {
            "providers": list(self.provider_names),
            "info_rules": [
                {"page": r.page, "phase": r.phase.name.lower(), "cfg": _cfg_flags(r.cfg)}
                for r in self._info_rules
            ],
            "data_rules": [
                {
                    "phase": r.phase.name.lower(),
                    "region": str(r.region),
                    "cfg": _cfg_flags(r.cfg),
                }
                for r in self._data_rules
            ],
        }

    # Private helpers -------------------------------------------------------

    def _match_info(self, page: int, phase: Phase) -> Iterator[InfoPageRule]:
        phase = coerce_phase(phase)
        if not phase.is_active:
            return
        for rule in self._info_rules:
            if rule.page == page and rule.phase == phase:
                yield rule

    def _match_data(self, page: int, phase: Phase) -> Iterator[DataRegionRule]:
        phase = coerce_phase(phase)
        if not phase.is_active:
            return
        for rule in self._data_rules:
            if rule.phase == phase and rule.region.contains(page):
                yield rule

    def _validate_info_rule(self, rule: InfoPageRule, source: str) -> None:
        total = self.partitions.total_pages(Partition.INFO)
        if not 0 <= rule.page < total:
            raise ConfigurationError(
                f"{source}.info_rules",
                f"page {rule.page} outside 0..{total - 1}",
            )

    def _validate_data_rule(self, rule: DataRegionRule, source: str) -> None:
        total = self.partitions.total_pages(Partition.DATA)
        if rule.base < 0 or rule.size < 0 or rule.base + rule.size > total:
            raise ConfigurationError(
                f"{source}.data_rules",
                f"region {rule.base}+{rule.size} exceeds {total} data pages",
            )


def _cfg_flags(cfg: PermittedOps) -> str:
    flags = "E" if cfg.en else "-"
    flags += "R" if cfg.rd_en else "-"
    flags += "P" if cfg.prog_en else "-"
    flags += "e" if cfg.page_erase_en else "-"
    flags += "B" if cfg.bank_erase_en else "-"
    return flags
