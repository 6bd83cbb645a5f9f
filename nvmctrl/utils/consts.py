"""Constants and utility values for the controller model."""


class ConstUtils:
    """Key widths and masks."""

    KEY_WIDTH = 128
    """Width in bits of the address and data scrambling keys."""

    MASK_KEY = (1 << KEY_WIDTH) - 1
    """128-bit key mask."""


# Placeholder key material driven when the OTP key interface is left
# unconnected. Documented, not secret; never a provisioned key.
PLACEHOLDER_ADDR_KEY = 0xDEADBEEFBEEFFACEDEADBEEF5A5AA5A5
PLACEHOLDER_DATA_KEY = 0xDEADBEEF5A5AA5A5DEADBEEFBEEFFACE


def width_mask(width: int) -> int:
    """Return an all-ones mask of ``width`` bits."""
    return (1 << width) - 1


def clog2(value: int) -> int:
    """Ceiling log2, with clog2(1) == 0.

    Matches how hardware parameter packages size index fields.
    """
    if value < 1:
        raise ValueError(f"clog2 undefined for {value}")
    return (value - 1).bit_length()
