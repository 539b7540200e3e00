"""
Stats Admin - metrics snapshot export

Filters a snapshot of counters, gauges, text readouts and histograms and
renders it as:
- Plain text
- JSON (with per-histogram interval/cumulative quantiles)
- Prometheus exposition text

Also controls recent metric-name lookup tracking.
"""

__version__ = "1.0.0"

from statsadmin.admin.handler import StatsHandler
from statsadmin.core.config import StatsAdminConfig
from statsadmin.stats.store import StatsStore

__all__ = ["StatsHandler", "StatsAdminConfig", "StatsStore", "__version__"]
