"""
NeoBudget - Ledger Reconciliation & Derivation Engine

Personal finance core that merges transactions from manual entry, CSV
files, AI statement extraction and a bank-aggregation feed into one
deduplicated ledger, and derives balances, recurring entries and
budget-health figures from it on demand.

PRINCIPLES:
1. The ledger is the only source of truth
2. Balances and summaries are derived, never stored
3. Every ingestion path goes through the deduplicator
4. Sync rounds commit all-or-nothing
5. Storage and external services are swappable
"""

__version__ = "1.0.0"
__author__ = "NeoBudget Team"
