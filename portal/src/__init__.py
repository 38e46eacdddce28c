"""
Plant portal service package.

Reconciles per-user plant access grants and per-site generation benchmarks
against a pluggable document store, and derives generation rollups from raw
plant measurements for the monitoring dashboard.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-101)

TODO:
- None
"""
