"""
EV charging telemetry service.

Ingests meter and vehicle telemetry into append-only history tables and
per-device latest-state tables, and derives charging-efficiency analytics.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-001)
"""

__version__ = "0.1.0"
