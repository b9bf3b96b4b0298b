"""
Slot Reconciliation Pipeline

Orchestrates one reconciliation run for an epoch:
1. Check the reference slot list is present
2. Reuse the cached remote slot list, or fetch it from the RPC node and cache it
3. Load both lists and compare them within the epoch
"""

import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from .epochs import fetch_bounds
from .exceptions import ConfigurationError
from .fetcher import DEFAULT_COMMITMENT, DEFAULT_PAGE_SIZE, BlockSource, fetch_all_blocks, flatten_windows
from .reconciler import ReconciliationReport, reconcile
from .slot_lists import canonicalize, has_usable_content, load_slot_list, save_slot_list
from .solana_rpc_client import BLOCK_COMMITMENT_LEVELS, SolanaRpcClient

logger = logging.getLogger(__name__)


@dataclass
class ReconcilerConfig:
    """Configuration for a reconciliation run."""
    # RPC configuration
    rpc_endpoint: str = ""
    rpc_timeout: int = 30
    rpc_max_retries: int = 3

    # Slot list locations
    lists_dir: str = "lists"
    reference_path: Optional[str] = None  # Overrides <lists_dir>/faithful/<epoch>.slots.txt

    # Fetch configuration
    page_size: int = DEFAULT_PAGE_SIZE
    commitment: str = DEFAULT_COMMITMENT
    refresh_cache: bool = False  # Fetch again even when a cached list exists

    def reference_list_path(self, epoch: int) -> Path:
        if self.reference_path:
            return Path(self.reference_path)
        return Path(self.lists_dir) / "faithful" / f"{epoch}.slots.txt"

    def remote_cache_path(self, epoch: int) -> Path:
        return Path(self.lists_dir) / "solana" / f"{epoch}.slots.txt-solana"


@dataclass
class RunStats:
    """Statistics from a reconciliation run."""
    windows_fetched: int = 0
    blocks_fetched: int = 0
    used_cache: bool = False
    cache_written: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SlotReconciliationPipeline:
    """
    Pipeline comparing the archival slot list of an epoch with the RPC node's.
    """

    def __init__(self, config: Optional[ReconcilerConfig] = None, client: Optional[BlockSource] = None):
        """
        Initialize the pipeline.

        Args:
            config: Run configuration (uses defaults if not provided)
            client: Block source to fetch from; a SolanaRpcClient is created
                on first use when not provided
        """
        self.config = config or ReconcilerConfig()
        self._client = client
        self._owns_client = client is None
        self.stats = RunStats()

    @property
    def client(self) -> BlockSource:
        """Lazily initialize the RPC client."""
        if self._client is None:
            self._client = SolanaRpcClient(
                endpoint=self.config.rpc_endpoint,
                timeout=self.config.rpc_timeout,
                max_retries=self.config.rpc_max_retries
            )
        return self._client

    def run(self, epoch: int) -> ReconciliationReport:
        """
        Reconcile the slot lists of one epoch.

        Raises:
            ConfigurationError: If the endpoint or the reference list is missing
            SlotListError: If a slot list cannot be read, parsed or written
            Any error raised by the RPC client while fetching
        """
        self.stats = RunStats()

        if not self.config.rpc_endpoint:
            raise ConfigurationError("RPC endpoint not specified")
        if self.config.commitment not in BLOCK_COMMITMENT_LEVELS:
            raise ConfigurationError(
                f"Commitment {self.config.commitment!r} is not supported for block listing, "
                f"use one of: {', '.join(BLOCK_COMMITMENT_LEVELS)}"
            )

        reference_path = self.config.reference_list_path(epoch)
        cache_path = self.config.remote_cache_path(epoch)
        logger.info(f"Comparing slots for epoch {epoch} from {reference_path.resolve()} with the RPC node")

        if not has_usable_content(reference_path):
            raise ConfigurationError(f"File {reference_path} does not exist or is empty")

        if has_usable_content(cache_path) and not self.config.refresh_cache:
            logger.info(f"Using cached RPC slot list {cache_path.resolve()}")
            remote = load_slot_list(cache_path)
            self.stats.used_cache = True
        else:
            remote = self._fetch_remote(epoch)
            save_slot_list(cache_path, remote)
            self.stats.cache_written = True
            logger.info(f"Saved slot list for epoch {epoch} (from RPC) to {cache_path.resolve()}")

        reference = load_slot_list(reference_path)

        report = reconcile(reference, remote, epoch)
        logger.info(
            f"Compared {report.reference_count} reference slots with {report.remote_count} RPC slots: "
            f"{len(report.only_in_reference)} only in reference, {len(report.only_in_remote)} only in RPC"
        )
        logger.info(f"Run stats: {self.stats.to_dict()}")
        return report

    def _fetch_remote(self, epoch: int) -> List[int]:
        start, end = fetch_bounds(epoch)
        logger.info(f"Fetching blocks {start} - {end} in pages of {self.config.page_size} ({self.config.commitment})")

        windows = fetch_all_blocks(
            self.client,
            start,
            end,
            page_size=self.config.page_size,
            commitment=self.config.commitment
        )
        blocks = flatten_windows(windows)
        self.stats.windows_fetched = len(windows)
        self.stats.blocks_fetched = len(blocks)
        return canonicalize(blocks)

    def close(self):
        """Clean up resources."""
        if self._owns_client and self._client is not None:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def config_from_env(**overrides) -> ReconcilerConfig:
    """Build a configuration from environment variables, then apply overrides."""
    config = ReconcilerConfig(
        rpc_endpoint=os.environ.get('SOLANA_RPC_URL', ''),
        rpc_timeout=int(os.environ.get('SOLANA_RPC_TIMEOUT', '30')),
        rpc_max_retries=int(os.environ.get('SOLANA_RPC_MAX_RETRIES', '3')),
        lists_dir=os.environ.get('SLOT_LISTS_DIR', 'lists'),
    )
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    return config
