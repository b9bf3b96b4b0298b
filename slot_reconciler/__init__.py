"""
Epoch Slot Reconciler

Compares the list of produced slots for a Solana epoch from an archival
reference file against the list reported live by a Solana RPC node.
"""

__version__ = "0.1.0"
