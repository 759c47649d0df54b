"""
Metrics scraper persistence layer.

This package stores periodic node and pod resource-usage snapshots from the
Kubernetes metrics API in SQLite and culls rows that fall outside the
retention window.
"""

__version__ = "0.1.0"
