"""
Ballot Kernel - single-election voting core

A permissioned, phased ballot process with:
- Linear phase workflow driven by an administrator
- Whitelisted voter registry
- Append-only proposal registry with one vote per voter
- Deterministic winner selection
- Atomic operations with post-commit notifications
"""

__version__ = "0.1.0"
