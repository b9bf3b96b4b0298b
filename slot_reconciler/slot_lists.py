"""
Slot List Files

Loading, saving and canonicalizing flat slot lists. A slot list file holds
one decimal slot number per line; blank lines are ignored and no ordering is
assumed on input. Lists written by this module are always canonical
(strictly increasing, no duplicates).
"""

import logging
import os
import tempfile
from bisect import bisect_left
from pathlib import Path
from typing import Iterable, List, Union

from .epochs import epoch_of
from .exceptions import (
    SlotListNotFoundError,
    SlotListParseError,
    SlotListReadError,
    SlotListWriteError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MAX_SLOT = 2**64 - 1


def canonicalize(slots: Iterable[int]) -> List[int]:
    """
    Sort slots ascending and drop duplicates.

    The input is not modified.
    """
    out: List[int] = []
    for slot in sorted(slots):
        if not out or out[-1] != slot:
            out.append(slot)
    return out


def contains(sorted_slots: List[int], slot: int) -> bool:
    """Binary search membership test on a canonical slot list."""
    i = bisect_left(sorted_slots, slot)
    return i < len(sorted_slots) and sorted_slots[i] == slot


def filter_to_epoch(slots: Iterable[int], epoch: int) -> List[int]:
    """Keep only the slots belonging to the given epoch."""
    return [slot for slot in slots if epoch_of(slot) == epoch]


def has_usable_content(path: PathLike) -> bool:
    """
    Check whether a slot list file exists and is not empty.

    A missing file and a zero-byte file are both "not usable": the first was
    never written, the second was written from an empty result and should
    not be trusted as a cache. Any other stat failure counts as usable so
    that load_slot_list() reports it as a read error.
    """
    try:
        return os.stat(path).st_size > 0
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError:
        return True


def _parse_slot(path: PathLike, line_number: int, line: str) -> int:
    # int() would also accept "+5", "5_000" and other non-decimal spellings
    if not line.isdigit() or not line.isascii():
        raise SlotListParseError(path, line_number, line)
    slot = int(line)
    if slot > MAX_SLOT:
        raise SlotListParseError(path, line_number, line)
    return slot


def load_slot_list(path: PathLike) -> List[int]:
    """
    Load a slot list file.

    Args:
        path: Path to a newline-delimited slot list

    Returns:
        Canonical list of slots

    Raises:
        SlotListNotFoundError: If the file does not exist
        SlotListReadError: If the file could not be read
        SlotListParseError: If any non-empty line is not a slot number
    """
    slots = []
    try:
        with open(path, 'r', encoding='ascii', errors='replace') as file:
            for line_number, raw_line in enumerate(file, start=1):
                line = raw_line.strip()
                if not line:
                    continue
                slots.append(_parse_slot(path, line_number, line))
    except FileNotFoundError as e:
        raise SlotListNotFoundError(path, f"Slot list {path} does not exist") from e
    except OSError as e:
        raise SlotListReadError(path, f"Could not read slot list {path}: {e}") from e

    canonical = canonicalize(slots)
    logger.debug(f"Loaded {len(canonical)} unique slots ({len(slots)} lines) from {path}")
    return canonical


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def save_slot_list(path: PathLike, slots: Iterable[int]):
    """
    Write a canonical slot list file.

    The list is written to a temporary file in the same directory and then
    renamed over the target, so readers never see a partially written file.
    The temporary file is removed if writing fails or is interrupted.

    Raises:
        SlotListWriteError: If the file could not be written
    """
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, 'w', encoding='ascii', newline='\n') as file:
            for slot in canonicalize(slots):
                file.write(f"{slot}\n")
        # mkstemp creates 0600 files; match what open() would have created
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise SlotListWriteError(path, f"Could not write slot list {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.debug(f"Wrote slot list {path}")
