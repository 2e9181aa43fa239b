"""
Test suite for the loan terms adapter

Contains:
- tests/unit/   : Unit tests for individual modules
- tests/fakes.py: In-memory ledger used by lifecycle and ledger tests
"""
