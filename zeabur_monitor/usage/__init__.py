from zeabur_monitor.usage.aggregator import (
    AccountFailure,
    AccountSummary,
    ProjectListing,
    UsageAggregator,
    UsageSnapshot,
    compute_usage_snapshot,
    display_cost,
    usage_window,
)

__all__ = [
    "AccountFailure",
    "AccountSummary",
    "ProjectListing",
    "UsageAggregator",
    "UsageSnapshot",
    "compute_usage_snapshot",
    "display_cost",
    "usage_window",
]
