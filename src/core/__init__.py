"""
Core domain models, fixed-point math and JSON contracts.

This module contains the foundational building blocks that are independent
of the ledger (no I/O, no chain access).
"""
