"""
Finance Chat - Source Package

Turns the replies of a conversational finance assistant into ledger
entries. The assistant embeds [TRANSACTION: ...] and [TRANSFER: ...]
markers in its text; this package extracts them, resolves the wallets
they refer to, commits the mutations and cleans the text for display.

DESIGN PRINCIPLES:
1. AI suggests → System validates → Ledger records
2. One bad marker never sinks the rest of the message
3. No silent guesses on ambiguous wallets
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Chat Team"
