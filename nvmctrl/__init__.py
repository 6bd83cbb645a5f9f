"""Non-volatile memory controller policy model.

This package models the access-control side of a flash controller:
partition layout, life-cycle phase gated protection rules, address
translation, and the request/response envelopes exchanged with the
storage backend and the trust authorities (OTP, life-cycle, power manager).

Getting started:
    from nvmctrl import AccessRequest, FlashOp, Partition, Phase, TrustSignals
    from nvmctrl import create_controller

    ctrl = create_controller()
    req = AccessRequest(FlashOp.READ, Partition.INFO, bank=0, page=1)
    ctrl.authorize(req, Phase.SEED, TrustSignals.defaults())
"""

from nvmctrl.core.builders import create_channel, create_controller
from nvmctrl.core.controller import Dispatch, FlashController
from nvmctrl.core.exceptions import (
    AddressOutOfRangeError,
    BackendBusyError,
    ConfigurationError,
    NvmCtrlError,
    ProtocolError,
)
from nvmctrl.core.flash_enums import DenyReason, FlashOp, Partition, Phase
from nvmctrl.core.policy import AccessRequest, AuthorizationResult
from nvmctrl.core.trust import KeyMaterial, TrustSignals
from nvmctrl.utils.config_loader import get_config, load_config

__all__ = [
    # Controller
    "FlashController",
    "Dispatch",
    "create_controller",
    "create_channel",
    # Requests and decisions
    "AccessRequest",
    "AuthorizationResult",
    "DenyReason",
    "FlashOp",
    "Partition",
    "Phase",
    # Trust
    "KeyMaterial",
    "TrustSignals",
    # Config
    "get_config",
    "load_config",
    # Errors
    "NvmCtrlError",
    "ConfigurationError",
    "AddressOutOfRangeError",
    "ProtocolError",
    "BackendBusyError",
]
