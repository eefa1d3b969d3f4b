"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ledger parser.

The tests are organized by invariant:
1. test_roundtrip.py - Account and amount display round-trips
2. test_temporal.py - Account validity windows, close and reopen
3. test_elision.py - Inferred amounts and zero-sum diagnostics
4. test_multicurrency.py - Price annotations and conversion failures
5. test_interning.py - Stable, shared segment and currency indices
6. test_atomicity.py - A failed parse never changes the caller's ledger
7. test_robustness.py - Arbitrary input parses or raises LedgerError

These tests use hypothesis for property-based testing.
"""
