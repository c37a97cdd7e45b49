"""Account pool model, controller and quota classification"""

from .models import (
    Account,
    AccountPoolState,
    QuotaSnapshot,
    QuotaView,
    normalize_account,
    normalize_accounts,
    normalize_quota,
    normalize_snapshot,
)
from .pool import AccountPoolController, adopt_pool, adopt_accounts, adopt_pool_config
from .quota import (
    PoolSummary,
    PremiumQuotaSummary,
    effective_percent,
    is_low_quota,
    pool_summary,
    premium_quota_summary,
    filter_accounts,
    usage_status_label,
    quota_reset_date,
)

__all__ = [
    "Account",
    "AccountPoolState",
    "QuotaSnapshot",
    "QuotaView",
    "normalize_account",
    "normalize_accounts",
    "normalize_quota",
    "normalize_snapshot",
    "AccountPoolController",
    "adopt_pool",
    "adopt_accounts",
    "adopt_pool_config",
    "PoolSummary",
    "PremiumQuotaSummary",
    "effective_percent",
    "is_low_quota",
    "pool_summary",
    "premium_quota_summary",
    "filter_accounts",
    "usage_status_label",
    "quota_reset_date",
]
