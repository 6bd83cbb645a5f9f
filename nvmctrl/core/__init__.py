"""Core modules for the flash controller model.

- address_space: flat/bus address <-> (bank, page, word, lane)
- partition: partition kinds, extents and page validity
- policy: phase-gated protection rules and authorization
- transaction: backend request/response envelopes
- trust: externally owned keys and handshake signals
- backend: single in-flight backend channel and in-memory backend
- controller: end-to-end request path
"""

from nvmctrl.core.address_space import AddressSpace, BusAddress, NativeAddress, PageRange
from nvmctrl.core.backend import BackendChannel, MemoryBackend
from nvmctrl.core.builders import create_channel, create_controller
from nvmctrl.core.controller import Dispatch, FlashController
from nvmctrl.core.flash_enums import DenyReason, FlashOp, Partition, Phase
from nvmctrl.core.partition import PartitionInfo, PartitionModel
from nvmctrl.core.policy import (
    NO_ACCESS,
    AccessRequest,
    AuthorizationResult,
    DataRegionRule,
    HardwareRuleProvider,
    InfoPageRule,
    PermittedOps,
    PhasePolicyTable,
    StaticRuleProvider,
)
from nvmctrl.core.transaction import (
    IDLE_REQUEST,
    Completion,
    FlashRequest,
    FlashResponse,
    TransactionCodec,
)
from nvmctrl.core.trust import (
    KeyMaterial,
    LifecycleRequest,
    LifecycleResponse,
    OtpKeyResponse,
    PowerManagerSignal,
    TrustSignals,
    lc_request_default,
    lc_response_default,
    otp_key_default,
    pwr_default,
)

__all__ = [
    # Addressing
    "AddressSpace",
    "BusAddress",
    "NativeAddress",
    "PageRange",
    # Partitions
    "PartitionInfo",
    "PartitionModel",
    # Enums
    "DenyReason",
    "FlashOp",
    "Partition",
    "Phase",
    # Policy
    "NO_ACCESS",
    "AccessRequest",
    "AuthorizationResult",
    "DataRegionRule",
    "HardwareRuleProvider",
    "InfoPageRule",
    "PermittedOps",
    "PhasePolicyTable",
    "StaticRuleProvider",
    # Transactions
    "IDLE_REQUEST",
    "Completion",
    "FlashRequest",
    "FlashResponse",
    "TransactionCodec",
    # Trust signals
    "KeyMaterial",
    "LifecycleRequest",
    "LifecycleResponse",
    "OtpKeyResponse",
    "PowerManagerSignal",
    "TrustSignals",
    "lc_request_default",
    "lc_response_default",
    "otp_key_default",
    "pwr_default",
    # Backend / controller
    "BackendChannel",
    "MemoryBackend",
    "Dispatch",
    "FlashController",
    "create_channel",
    "create_controller",
]
