"""
Domain services: aggregation, benchmarks, reconciliation, and the
access-grant and benchmark-record reconcilers built on top of them.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-101)
"""
