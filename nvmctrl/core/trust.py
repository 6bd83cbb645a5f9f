"""Signals owned by the external trust authorities.

Key material comes from the OTP controller, RMA and provisioning signals
from the life-cycle controller, and the init flag from the power manager.
This model only reads them. When an interface is left unconnected, the
named ``*_default()`` constructors below supply the documented placeholder
values so that behavior stays deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nvmctrl.utils.consts import (
    PLACEHOLDER_ADDR_KEY,
    PLACEHOLDER_DATA_KEY,
    ConstUtils,
    width_mask,
)

# Width of the RMA request/acknowledge tokens. Tokens travel on the bus,
# so this must equal topology.bus_width of the bundled default config.
RMA_TOKEN_WIDTH = 32


def _check_width(name: str, value: int, width: int) -> None:
    if not 0 <= value <= width_mask(width):
        raise ValueError(f"{name}=0x{value:X} does not fit in {width} bits")


@dataclass(frozen=True)
class KeyMaterial:
    """Address and data scrambling keys.

    ``provisioned`` is False only for the placeholder pair, and the
    placeholder values can never be tagged as provisioned. Nothing in the
    policy path reads keys; they are forwarded to the backend as-is.
    """

    addr_key: int
    data_key: int
    provisioned: bool = True

    def __post_init__(self):
        _check_width("addr_key", self.addr_key, ConstUtils.KEY_WIDTH)
        _check_width("data_key", self.data_key, ConstUtils.KEY_WIDTH)
        if self.provisioned and (
            self.addr_key == PLACEHOLDER_ADDR_KEY or self.data_key == PLACEHOLDER_DATA_KEY
        ):
            raise ValueError("Placeholder key material cannot be marked provisioned")

    @classmethod
    def placeholder(cls) -> KeyMaterial:
        return cls(PLACEHOLDER_ADDR_KEY, PLACEHOLDER_DATA_KEY, provisioned=False)

    @property
    def is_placeholder(self) -> bool:
        return not self.provisioned

    def __repr__(self) -> str:
        # Keep real keys out of logs and tracebacks
        if self.provisioned:
            return "KeyMaterial(<provisioned>)"
        return "KeyMaterial(<placeholder>)"


@dataclass(frozen=True)
class OtpKeyResponse:
    keys: KeyMaterial
    seed_valid: bool


@dataclass(frozen=True)
class LifecycleRequest:
    rma_req: bool
    rma_req_token: int
    provision_en: bool

    def __post_init__(self):
        _check_width("rma_req_token", self.rma_req_token, RMA_TOKEN_WIDTH)


@dataclass(frozen=True)
class LifecycleResponse:
    rma_ack: bool
    rma_ack_token: int

    def __post_init__(self):
        _check_width("rma_ack_token", self.rma_ack_token, RMA_TOKEN_WIDTH)

    @classmethod
    def acknowledge(cls, token: int) -> LifecycleResponse:
        """Acknowledge an RMA request, carrying the authority-supplied token."""
        return cls(rma_ack=True, rma_ack_token=token)


@dataclass(frozen=True)
class PowerManagerSignal:
    init: bool


def otp_key_default() -> OtpKeyResponse:
    """Unconnected OTP interface: placeholder keys, seed reported valid."""
    return OtpKeyResponse(keys=KeyMaterial.placeholder(), seed_valid=True)


def lc_request_default() -> LifecycleRequest:
    """Unconnected life-cycle request: no RMA, provisioning enabled."""
    return LifecycleRequest(rma_req=False, rma_req_token=0, provision_en=True)


def lc_response_default() -> LifecycleResponse:
    return LifecycleResponse(rma_ack=False, rma_ack_token=0)


def pwr_default() -> PowerManagerSignal:
    """Unconnected power manager: init asserted."""
    return PowerManagerSignal(init=True)


@dataclass(frozen=True)
class TrustSignals:
    """Snapshot of every externally owned input, passed into each evaluation."""

    otp: OtpKeyResponse = field(default_factory=otp_key_default)
    lc: LifecycleRequest = field(default_factory=lc_request_default)
    pwr: PowerManagerSignal = field(default_factory=pwr_default)

    @classmethod
    def defaults(cls) -> TrustSignals:
        return cls()

    def provisioning_enabled(self) -> bool:
        return self.lc.provision_en

    def seed_valid(self) -> bool:
        return self.otp.seed_valid

    def initialized(self) -> bool:
        return self.pwr.init

    def rma_requested(self) -> bool:
        return self.lc.rma_req

    def seed_access_allowed(self) -> bool:
        """Extra gate on Seed-phase operations, ANDed with the rule table."""
        return self.provisioning_enabled() and self.seed_valid()

    def keys(self) -> KeyMaterial:
        return self.otp.keys

    def using_placeholder_keys(self) -> bool:
        return self.otp.keys.is_placeholder
