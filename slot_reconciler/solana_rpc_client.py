"""
Solana JSON-RPC Client

A small client for the Solana JSON-RPC API, covering the methods needed to
list produced blocks for a slot range.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import SolanaRpcError

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

# getBlocks rejects "processed"
BLOCK_COMMITMENT_LEVELS = ("confirmed", "finalized")


class SolanaRpcClient:
    """
    Client for interacting with a Solana RPC node.

    Any public RPC endpoint works; no authentication is needed unless the
    provider embeds an API key in the URL.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: int = 30,
        max_retries: int = 3
    ):
        """
        Initialize the Solana RPC client.

        Args:
            endpoint: URL of the RPC node (e.g., 'https://api.mainnet-beta.solana.com')
            timeout: Request timeout in seconds (default: 30)
            max_retries: Maximum number of retry attempts (default: 3)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self._request_ids = itertools.count(1)

        # Configure session with retry strategy
        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

    def _make_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., 'getBlocks')
            params: Positional parameters

        Returns:
            The 'result' member of the response

        Raises:
            requests.exceptions.RequestException: For transport and HTTP failures
            SolanaRpcError: If the node answered with an error object
        """
        payload: Dict[str, Any] = {
            'jsonrpc': '2.0',
            'id': next(self._request_ids),
            'method': method,
            'params': params or []
        }

        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()

        except requests.exceptions.HTTPError as e:
            logger.error(f"HTTP Error calling {method}: {e}")
            if e.response is not None:
                logger.debug(f"Response body: {e.response.text if e.response.text else 'Empty'}")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"Request Error calling {method}: {e}")
            raise

        error = body.get('error')
        if error:
            raise SolanaRpcError(error.get('code'), error.get('message', ''), error.get('data'))

        return body.get('result')

    # ========== Block Queries ==========

    def get_blocks(
        self,
        start_slot: int,
        end_slot: int,
        commitment: str = "finalized"
    ) -> List[int]:
        """
        List the slots that produced a block between two slots.

        Args:
            start_slot: First slot of the range (inclusive)
            end_slot: Last slot of the range (inclusive, at most 500,000 slots after start_slot)
            commitment: 'confirmed' or 'finalized' ('processed' is not supported by getBlocks)

        Returns:
            List of slot numbers
        """
        result = self._make_request('getBlocks', [start_slot, end_slot, {'commitment': commitment}])
        return list(result or [])

    def get_slot(self, commitment: str = "finalized") -> int:
        """Get the current slot at the given commitment level."""
        return self._make_request('getSlot', [{'commitment': commitment}])

    # ========== Health/Status ==========

    def health_check(self) -> bool:
        """
        Check if the node reports itself healthy.

        Returns:
            True if the node answered getHealth with "ok", False otherwise
        """
        try:
            return self._make_request('getHealth') == 'ok'
        except (requests.exceptions.RequestException, SolanaRpcError) as e:
            logger.warning(f"Health check failed: {e}")
            return False

    # ========== Utility Methods ==========

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
