"""
Crowdfund Kernel - Investment Ledger and Vesting Engine

A per-campaign accounting state machine with:
- Exact conservation of contributed funds
- Mutually exclusive terminal states
- Flag-then-transfer payouts (no double payment)
- Cliff + linear token vesting with floor arithmetic
- Append-only domain event log
"""

__version__ = "0.1.0"
