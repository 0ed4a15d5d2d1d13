"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the payment splitter.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Share and release accounting, no value created or lost
2. atomicity.py - All-or-nothing release and removal semantics
3. idempotency.py - Repeated releases pay nothing new
4. authorization.py - Rejected callers change nothing
5. reentrancy.py - Recipients calling back cannot double-pay

These tests use hypothesis for property-based testing.
"""
