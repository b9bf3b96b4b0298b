"""
Paginated block fetcher.

Walks a slot range in fixed-size windows against anything that can list the
blocks produced in a range, collecting each window's result. Windows are
fetched one after another; the first failing window aborts the whole fetch.
"""

import logging
import time
from typing import Iterator, List, Protocol, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
DEFAULT_COMMITMENT = "finalized"


class BlockSource(Protocol):
    """Anything that can list produced slots in an inclusive range."""

    def get_blocks(self, start_slot: int, end_slot: int, commitment: str) -> List[int]:
        ...


def iter_windows(start_slot: int, end_slot: int, page_size: int = DEFAULT_PAGE_SIZE) -> Iterator[Tuple[int, int]]:
    """
    Split an inclusive slot range into consecutive windows.

    Each window is inclusive and spans at most page_size slots; the last one
    may be shorter. An empty range (start_slot > end_slot) yields nothing.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")

    while start_slot <= end_slot:
        end = min(start_slot + page_size - 1, end_slot)
        yield start_slot, end
        start_slot = end + 1


def fetch_all_blocks(
    source: BlockSource,
    start_slot: int,
    end_slot: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    commitment: str = DEFAULT_COMMITMENT
) -> List[List[int]]:
    """
    Fetch every produced slot in [start_slot, end_slot], one window at a time.

    Args:
        source: Block source to query
        start_slot: First slot (inclusive)
        end_slot: Last slot (inclusive)
        page_size: Maximum slots per request
        commitment: Commitment level passed through to the source

    Returns:
        One list of slots per window, in window order. Not deduplicated.

    Raises:
        Whatever the source raises for the first failing window. Results of
        earlier windows are discarded.
    """
    out: List[List[int]] = []

    for index, (window_start, window_end) in enumerate(iter_windows(start_slot, end_slot, page_size), start=1):
        started_at = time.monotonic()
        try:
            blocks = source.get_blocks(window_start, window_end, commitment)
        except Exception:
            logger.error(f"{index} · Fetching blocks between {window_start} and {window_end} failed")
            raise

        elapsed = time.monotonic() - started_at
        logger.info(f"{index} · Fetched {len(blocks)} blocks between {window_start} and {window_end} in {elapsed:.2f}s")
        out.append(list(blocks))

    return out


def flatten_windows(windows: List[List[int]]) -> List[int]:
    """Concatenate per-window results into one list."""
    return [slot for window in windows for slot in window]
