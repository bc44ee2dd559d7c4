from monthly_playlists.sync.monthly import (
    MonthBucketSync,
    SyncReport,
    compute_delta,
    month_label,
)

__all__ = ["MonthBucketSync", "SyncReport", "compute_delta", "month_label"]
