"""
Persistence and retention for node and pod metrics.

Components:
- store: shared SQLite handle and transaction scope
- schema: table creation
- writer: atomic snapshot inserts
- culler: time-windowed deletion
"""

from metrics_scraper.database.culler import cull
from metrics_scraper.database.models import NodeMetricRow, PodMetricRow
from metrics_scraper.database.schema import initialize
from metrics_scraper.database.store import MetricsStore
from metrics_scraper.database.writer import write_snapshot

__all__ = [
    "MetricsStore",
    "NodeMetricRow",
    "PodMetricRow",
    "cull",
    "initialize",
    "write_snapshot",
]
