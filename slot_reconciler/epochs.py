"""
Epoch Arithmetic

Maps epochs to their inclusive slot ranges and slots back to their epoch.
Every other component filters through these functions, so epoch_of() must
stay the exact inverse of epoch_range().
"""

from typing import Tuple

# Slots per epoch on Solana mainnet-beta
EPOCH_LENGTH = 432_000


def _check_non_negative(name: str, value: int):
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def epoch_range(epoch: int) -> Tuple[int, int]:
    """
    Get the inclusive slot range owned by an epoch.

    Args:
        epoch: Epoch number

    Returns:
        Tuple of (first_slot, last_slot)
    """
    _check_non_negative("epoch", epoch)
    start = epoch * EPOCH_LENGTH
    stop = start + EPOCH_LENGTH - 1
    return start, stop


def epoch_of(slot: int) -> int:
    """Return the epoch the given slot belongs to."""
    _check_non_negative("slot", slot)
    return slot // EPOCH_LENGTH


def fetch_bounds(epoch: int) -> Tuple[int, int]:
    """
    Get the slot range to request from the RPC node for an epoch.

    The range starts one slot before the epoch (clamped at zero) so the last
    slot of the previous epoch is requested too. Anything outside the epoch
    is filtered out again before comparing.
    """
    start, stop = epoch_range(epoch)
    if start > 0:
        start -= 1
    return start, stop
