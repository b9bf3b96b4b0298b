"""
Slot list reconciliation.

Compares a reference slot list with a remote one for a single epoch and
reports the slots that only one side knows about.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List

from .slot_lists import contains, filter_to_epoch


@dataclass
class ReconciliationReport:
    """Result of comparing two slot lists for one epoch."""
    epoch: int
    only_in_reference: List[int] = field(default_factory=list)
    only_in_remote: List[int] = field(default_factory=list)
    reference_count: int = 0
    remote_count: int = 0

    @property
    def identical(self) -> bool:
        return not self.only_in_reference and not self.only_in_remote

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['identical'] = self.identical
        return data


def _missing_from(slots: List[int], other: List[int]) -> List[int]:
    return [slot for slot in slots if not contains(other, slot)]


def reconcile(reference: List[int], remote: List[int], epoch: int) -> ReconciliationReport:
    """
    Compare two canonical slot lists within an epoch.

    Slots outside the epoch are dropped from both sides first: the remote
    fetch overlaps the previous epoch by one slot, and older list files may
    carry stray entries.

    Args:
        reference: Canonical slot list from the archival source
        remote: Canonical slot list from the RPC node
        epoch: Epoch to compare

    Returns:
        ReconciliationReport
    """
    reference = filter_to_epoch(reference, epoch)
    remote = filter_to_epoch(remote, epoch)

    return ReconciliationReport(
        epoch=epoch,
        only_in_reference=_missing_from(reference, remote),
        only_in_remote=_missing_from(remote, reference),
        reference_count=len(reference),
        remote_count=len(remote),
    )


def red(s: str) -> str:
    return "\033[31m" + s + "\033[0m"


def green(s: str) -> str:
    return "\033[32m" + s + "\033[0m"


def format_report(
    report: ReconciliationReport,
    reference_label: str = "faithful",
    remote_label: str = "solana",
    color: bool = True
) -> List[str]:
    """
    Render a report as printable lines.

    Each non-empty side gets a header followed by one slot per line. An
    identical report renders as a single "No differences." line.
    """
    if color:
        ref_present, ref_missing = green(reference_label), red(reference_label)
        remote_present, remote_missing = green(remote_label), red(remote_label)
    else:
        ref_present = ref_missing = reference_label
        remote_present = remote_missing = remote_label

    lines = []
    if report.only_in_reference:
        lines.append(f"🚫 blocks in {ref_present} but not in {remote_missing}:")
        lines.extend(str(slot) for slot in report.only_in_reference)
    if report.only_in_remote:
        lines.append(f"🚫 blocks in {remote_present} but not in {ref_missing}:")
        lines.extend(str(slot) for slot in report.only_in_remote)
    if report.identical:
        lines.append("✅ No differences.")
    return lines
