"""Quota health derived from account snapshots

Pure functions only; nothing here talks to the network or mutates state.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from settings import LOW_QUOTA_THRESHOLD
from .models import Account

QUOTA_FILTERS = ("all", "low", "not-low")


@dataclass(frozen=True)
class PoolSummary:
    total: int
    active: int
    paused: int
    low_quota: int
    no_quota: int


@dataclass(frozen=True)
class PremiumQuotaSummary:
    text: str
    percent: Optional[int] = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def effective_percent(account: Account) -> Optional[int]:
    """Lowest remaining percentage across the account's quota snapshots

    Unlimited snapshots count as 100. Snapshots without a percentage are
    skipped. Returns None when no snapshot contributes a value.
    """
    if account.quota is None:
        return None

    percents: List[float] = []
    for snapshot in account.quota.snapshots():
        if snapshot is None:
            continue
        if snapshot.unlimited:
            percents.append(100.0)
        elif snapshot.percent_remaining is not None:
            percents.append(snapshot.percent_remaining)

    if not percents:
        return None
    return _round_half_up(min(percents))


def is_low_quota(account: Account, threshold: int = LOW_QUOTA_THRESHOLD) -> bool:
    if account.paused_reason == "quota":
        return True
    percent = effective_percent(account)
    return percent is not None and percent <= threshold


def pool_summary(accounts: Sequence[Account], configured_count: Optional[int] = None) -> PoolSummary:
    """Count pool members by health

    Accounts without quota data count towards ``no_quota`` and are not
    examined for low quota.
    """
    active = paused = low = missing = 0
    for account in accounts:
        if account.active and not account.paused:
            active += 1
        if account.paused:
            paused += 1
        if account.quota is None:
            missing += 1
            continue
        if is_low_quota(account):
            low += 1

    return PoolSummary(
        total=configured_count or len(accounts),
        active=active,
        paused=paused,
        low_quota=low,
        no_quota=missing,
    )


def premium_quota_summary(accounts: Iterable[Account]) -> PremiumQuotaSummary:
    """Aggregate premium-interaction allowance across the pool"""
    remaining = 0.0
    limit = 0.0
    seen = 0
    unlimited = False

    for account in accounts:
        premium = account.quota.premium_interactions if account.quota else None
        if premium is None:
            continue
        seen += 1
        if premium.unlimited:
            unlimited = True
            continue
        remaining += premium.remaining or 0
        limit += premium.limit or 0

    if seen == 0:
        return PremiumQuotaSummary(text="N/A")
    if unlimited:
        return PremiumQuotaSummary(text="Unlimited")

    percent = _round_half_up(remaining / limit * 100) if limit > 0 else 0
    return PremiumQuotaSummary(text=f"{remaining:g} / {limit:g}", percent=percent)


def filter_accounts(accounts: Iterable[Account], mode: str = "all") -> List[Account]:
    """Select accounts by quota health: "all", "low" or "not-low" """
    if mode == "low":
        return [a for a in accounts if is_low_quota(a)]
    if mode == "not-low":
        return [a for a in accounts if not is_low_quota(a)]
    if mode != "all":
        raise ValueError(f"Unknown quota filter: {mode}")
    return list(accounts)


def usage_status_label(account: Account) -> str:
    if account.paused:
        return "Low Quota" if account.paused_reason == "quota" else "Paused"
    if not account.active:
        return "Inactive"
    if account.rate_limited:
        return "Rate Limited"
    return "Active"


def quota_reset_date(accounts: Iterable[Account], fallback: Optional[str] = None) -> Optional[str]:
    """First reset date reported by any account, else ``fallback``"""
    for account in accounts:
        if account.quota is not None and account.quota.reset_date:
            return account.quota.reset_date
    return fallback
