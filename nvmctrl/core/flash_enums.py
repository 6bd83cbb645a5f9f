"""Flash controller enumeration types."""

from enum import IntEnum


class Phase(IntEnum):
    """Life-cycle phase reported by the external life-cycle manager.

    The phase decides which hardware rules are live. Only SEED and RMA
    ever match a rule; NONE and INVALID deny everything.
    """

    SEED = 0
    """Seed phase: creator/owner seed pages may be read."""

    RMA = 1
    """Return-to-manufacturer phase: broad erase access for decommissioning."""

    NONE = 2
    """No life-cycle operation in progress."""

    INVALID = 3
    """Corrupted or undecodable phase input."""

    @property
    def is_active(self) -> bool:
        """True for phases that can match a rule."""
        return self in (Phase.SEED, Phase.RMA)


class Partition(IntEnum):
    """Storage partition kind."""

    DATA = 0
    """Main data partition."""

    INFO = 1
    """Information partition (seeds, manufacturing data)."""


class FlashOp(IntEnum):
    """Operation requested from the storage backend."""

    NONE = 0
    READ = 1
    PROGRAM = 2
    PAGE_ERASE = 3
    BANK_ERASE = 4


class DenyReason(IntEnum):
    """Why an authorization was denied."""

    PHASE_MISMATCH = 0
    """No rule covers the addressed page for the current phase."""

    OP_NOT_PERMITTED = 1
    """A rule matched but does not grant the requested operation."""

    NOT_PROVISIONED = 2
    """Seed material is not provisioned or provisioning is disabled."""

    INVALID_PHASE = 3
    """Phase input is NONE or INVALID."""

    NOT_INITIALIZED = 4
    """Power manager has not released the controller from init."""
