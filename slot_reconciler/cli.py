"""
Epoch Slot Reconciler

Compare the slots of an epoch listed in an archival ("faithful") slot list
with the blocks an RPC node reports for the same epoch.

Usage:
    # Compare epoch 500 against a public RPC node
    slot-reconciler --epoch 500 --rpc https://api.mainnet-beta.solana.com

    # Use a reference list outside lists/faithful/
    slot-reconciler --epoch 500 --faithful /data/500.slots.txt

    # Ignore the cached RPC list and fetch it again
    slot-reconciler --epoch 500 --refresh

    # Check the RPC node instead of comparing
    slot-reconciler --status

Environment variables:
    SOLANA_RPC_URL - RPC endpoint (used when --rpc is not given)
    SOLANA_RPC_TIMEOUT - Request timeout in seconds (default: 30)
    SOLANA_RPC_MAX_RETRIES - Transport retries per request (default: 3)
    SLOT_LISTS_DIR - Directory holding faithful/ and solana/ lists (default: lists)
"""

import argparse
import json
import logging
import sys

from .epochs import epoch_range
from .reconciler import format_report
from .reconciliation_pipeline import SlotReconciliationPipeline, config_from_env
from .solana_rpc_client import COMMITMENT_LEVELS, SolanaRpcClient

logger = logging.getLogger(__name__)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative, got {value}")
    return number


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def get_config(args):
    """Build configuration from environment and command line args."""
    return config_from_env(
        rpc_endpoint=args.rpc,
        rpc_timeout=args.timeout,
        rpc_max_retries=args.max_retries,
        lists_dir=args.lists_dir,
        reference_path=args.faithful,
        page_size=args.page_size,
        commitment=args.commitment,
        refresh_cache=args.refresh
    )


def run_reconciliation(args) -> int:
    """Run the reconciliation and print the report."""
    config = get_config(args)

    start, stop = epoch_range(args.epoch)
    if not args.json:
        print(f"Epoch {args.epoch}: {start} - {stop}")

    with SlotReconciliationPipeline(config) as pipeline:
        report = pipeline.run(args.epoch)
        stats = pipeline.stats

    if args.json:
        output = report.to_dict()
        output['start_slot'] = start
        output['stop_slot'] = stop
        output['stats'] = stats.to_dict()
        print(json.dumps(output, indent=2))
    else:
        for line in format_report(report, color=not args.no_color):
            print(line)
    return 0


def show_status(args) -> int:
    """Show RPC node status."""
    config = get_config(args)
    if not config.rpc_endpoint:
        logger.error("RPC endpoint not specified")
        return 1

    with SolanaRpcClient(config.rpc_endpoint, timeout=config.rpc_timeout, max_retries=config.rpc_max_retries) as client:
        healthy = client.health_check()
        status = {'endpoint': config.rpc_endpoint, 'healthy': healthy}
        if healthy:
            status['slot'] = client.get_slot(config.commitment)

    print(json.dumps(status, indent=2))
    return 0 if healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='slot-reconciler',
        description='Compare archival and RPC slot lists for a Solana epoch',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        '--epoch', type=non_negative_int,
        help='The epoch to compare'
    )
    mode_group.add_argument(
        '--status', action='store_true',
        help='Show RPC node health and current slot'
    )

    parser.add_argument(
        '--rpc', type=str, default=None,
        help='RPC endpoint to use (default: $SOLANA_RPC_URL)'
    )
    parser.add_argument(
        '--faithful', type=str, default=None,
        help='Path to the faithful slot list file (default: <lists-dir>/faithful/<epoch>.slots.txt)'
    )
    parser.add_argument(
        '--lists-dir', type=str, default=None,
        help='Directory holding slot lists (default: $SLOT_LISTS_DIR or lists)'
    )
    parser.add_argument(
        '--page-size', type=int, default=1000,
        help='Number of slots per getBlocks call (default: 1000)'
    )
    parser.add_argument(
        '--commitment', choices=COMMITMENT_LEVELS, default='finalized',
        help='Commitment level for RPC queries (default: finalized)'
    )
    parser.add_argument(
        '--refresh', action='store_true',
        help='Fetch from the RPC node even if a cached list exists'
    )
    parser.add_argument(
        '--timeout', type=int, default=None,
        help='RPC request timeout in seconds (default: $SOLANA_RPC_TIMEOUT or 30)'
    )
    parser.add_argument(
        '--max-retries', type=int, default=None,
        help='Transport retries per RPC request (default: $SOLANA_RPC_MAX_RETRIES or 3)'
    )
    parser.add_argument(
        '--no-color', action='store_true',
        help='Disable colored output'
    )
    parser.add_argument(
        '--json', action='store_true',
        help='Print the report as JSON'
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.status:
            return show_status(args)
        return run_reconciliation(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=args.verbose)
        return 1


if __name__ == '__main__':
    sys.exit(main())
