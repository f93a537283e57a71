"""
CTM - Commit-Turn-Move, a double rock-paper-scissors game over a shared ledger.

Two players each commit two different hands, reveal them, then commit which
hand to keep for a final rock-paper-scissors duel. The package provides:
- Commitment hashing with a fixed preimage layout
- Outcome resolution (ties go to player A)
- The five-phase session state machine
- A two-party asynchronous bootstrap for co-signed session creation
- An in-process ledger host, a caller-side client and a REST API
"""

__version__ = "0.1.0"
