"""Flash controller front end.

Runs the full path for one request:

1. range check against the partition model (raises before anything else)
2. power-manager init gate
3. phase policy table lookup
4. Seed-phase trust gate (provisioning enabled AND seed valid)
5. translation to a bus address and packaging into a FlashRequest

Phase and trust signals are parameters of every call, so a decision is
never reused across a life-cycle transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from nvmctrl.core.address_space import AddressSpace
from nvmctrl.core.backend import BackendChannel
from nvmctrl.core.flash_enums import DenyReason, Phase
from nvmctrl.core.partition import PartitionModel
from nvmctrl.core.policy import (
    AccessRequest,
    AuthorizationResult,
    HardwareRuleProvider,
    PhasePolicyTable,
    coerce_phase,
)
from nvmctrl.core.transaction import FlashRequest, TransactionCodec
from nvmctrl.core.trust import TrustSignals
from nvmctrl.interfaces.rule_provider import RuleProvider
from nvmctrl.utils.config_loader import ControllerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dispatch:
    """Authorization outcome plus the request to send, if permitted."""
    decision: AuthorizationResult
    transaction: Optional[FlashRequest] = None


class FlashController:
    """Authorizes and encodes flash operations for one controller instance."""

    def __init__(
        self,
        config: ControllerConfig,
        extra_providers: Sequence[RuleProvider] = (),
    ):
        self.config = config
        self.address_space = AddressSpace(config.topology)
        self.partitions = PartitionModel(config.topology)
        self.policy = PhasePolicyTable(
            self.partitions, [HardwareRuleProvider(config), *extra_providers]
        )
        self.codec = TransactionCodec(self.address_space)

    def authorize(
        self, request: AccessRequest, phase: Phase, trust: TrustSignals
    ) -> AuthorizationResult:
        """Policy table decision ANDed with the trust gates."""
        self.partitions.check_page(request.partition, request.bank, request.page)

        if not trust.initialized():
            return self._denied(request, phase, AuthorizationResult.deny(DenyReason.NOT_INITIALIZED))

        decision = self.policy.authorize(request, phase)
        if not decision:
            return self._denied(request, phase, decision)

        if coerce_phase(phase) == Phase.SEED and not trust.seed_access_allowed():
            return self._denied(request, phase, AuthorizationResult.deny(DenyReason.NOT_PROVISIONED))

        logger.debug(
            f"Permitted {request.op.name} {request.partition.name} "
            f"bank={request.bank} page={request.page} phase={coerce_phase(phase).name}"
        )
        return decision

    def prepare(
        self,
        request: AccessRequest,
        phase: Phase,
        trust: TrustSignals,
        payload: Optional[int] = None,
        scramble_en: bool = False,
    ) -> Dispatch:
        """Authorize and, when permitted, encode the backend request.

        Raises:
            AddressOutOfRangeError: the addressed page or word does not exist
            ProtocolError: payload does not match the operation
        """
        # Word and lane are checked up front so a bad address never reaches policy
        self.address_space.compose_bus(request.bank, request.page, request.word, request.lane)

        decision = self.authorize(request, phase, trust)
        if not decision:
            return Dispatch(decision)

        transaction = self.codec.encode(
            request.op,
            request.partition,
            request.bank,
            request.page,
            request.word,
            payload=payload,
            scramble_en=scramble_en,
            keys=trust.keys(),
            lane=request.lane,
        )
        return Dispatch(decision, transaction)

    def execute(
        self,
        channel: BackendChannel,
        request: AccessRequest,
        phase: Phase,
        trust: TrustSignals,
        payload: Optional[int] = None,
        scramble_en: bool = False,
    ) -> Dispatch:
        """Prepare a request and submit it to channel when permitted.

        Completion is reported later through channel.poll().
        """
        dispatch = self.prepare(request, phase, trust, payload=payload, scramble_en=scramble_en)
        if dispatch.transaction is not None:
            channel.submit(dispatch.transaction)
        return dispatch

    @staticmethod
    def _denied(
        request: AccessRequest, phase: Phase, decision: AuthorizationResult
    ) -> AuthorizationResult:
        logger.warning(
            f"{decision}: {request.op.name} {request.partition.name} "
            f"bank={request.bank} page={request.page} phase={coerce_phase(phase).name}"
        )
        return decision
