from __future__ import annotations

import pytest

from accounts.models import normalize_account, normalize_quota
from accounts.quota import (
    effective_percent,
    filter_accounts,
    is_low_quota,
    pool_summary,
    premium_quota_summary,
    quota_reset_date,
    usage_status_label,
)


def _account(account_id: str = "a1", **extra):
    return normalize_account({"id": account_id, **extra})


def test_effective_percent_is_minimum_with_unlimited_as_100() -> None:
    account = _account(quota={"chat": {"percentRemaining": 60}, "premiumInteractions": {"unlimited": True}})
    assert effective_percent(account) == 60


def test_effective_percent_without_quota() -> None:
    assert effective_percent(_account()) is None
    assert effective_percent(_account(quota={"chat": {"remaining": 5}})) is None


def test_effective_percent_rounds_half_up() -> None:
    assert effective_percent(_account(quota={"chat": {"percentRemaining": 20.5}})) == 21
    assert effective_percent(_account(quota={"chat": {"percentRemaining": 20.4}})) == 20


def test_copilot_usage_shape_is_normalized() -> None:
    view = normalize_quota({
        "chat": {"quota_remaining": 10, "entitlement": 50, "percent_remaining": 20, "unlimited": False},
        "premium_interactions": {"unlimited": True},
        "quota_reset_date": "2024-06-01",
    })
    assert view.chat.remaining == 10
    assert view.chat.limit == 50
    assert view.chat.percent_remaining == 20
    assert view.premium_interactions.unlimited is True
    assert view.reset_date == "2024-06-01"


def test_low_quota_from_paused_reason_without_percent() -> None:
    account = _account(paused=True, pausedReason="quota")
    assert effective_percent(account) is None
    assert is_low_quota(account) is True


def test_low_quota_threshold_is_inclusive() -> None:
    assert is_low_quota(_account(quota={"chat": {"percentRemaining": 20}})) is True
    assert is_low_quota(_account(quota={"chat": {"percentRemaining": 21}})) is False


def test_pool_summary() -> None:
    accounts = [
        _account("a", quota={"chat": {"percentRemaining": 90}}),
        _account("b", paused=True, quota={"chat": {"percentRemaining": 5}}),
        _account("c", paused=True, pausedReason="quota"),
        _account("d", active=False, quota={"chat": {"percentRemaining": 50}}),
    ]
    summary = pool_summary(accounts)
    assert summary.total == 4
    assert summary.active == 1
    assert summary.paused == 2
    assert summary.low_quota == 1
    assert summary.no_quota == 1

    assert pool_summary(accounts, configured_count=6).total == 6
    assert pool_summary(accounts, configured_count=0).total == 4


def test_premium_quota_summary() -> None:
    assert premium_quota_summary([_account()]).text == "N/A"

    unlimited = _account(quota={"premiumInteractions": {"unlimited": True}})
    assert premium_quota_summary([unlimited]).text == "Unlimited"

    accounts = [
        _account("a", quota={"premiumInteractions": {"remaining": 30, "entitlement": 100}}),
        _account("b", quota={"premiumInteractions": {"remaining": 45, "entitlement": 200}}),
    ]
    summary = premium_quota_summary(accounts)
    assert summary.text == "75 / 300"
    assert summary.percent == 25


def test_filter_accounts() -> None:
    low = _account("low", quota={"chat": {"percentRemaining": 3}})
    ok = _account("ok", quota={"chat": {"percentRemaining": 80}})
    assert filter_accounts([low, ok], "low") == [low]
    assert filter_accounts([low, ok], "not-low") == [ok]
    assert filter_accounts([low, ok]) == [low, ok]
    with pytest.raises(ValueError):
        filter_accounts([low], "bogus")


def test_usage_status_label() -> None:
    assert usage_status_label(_account(paused=True, pausedReason="quota")) == "Low Quota"
    assert usage_status_label(_account(paused=True)) == "Paused"
    assert usage_status_label(_account(active=False)) == "Inactive"
    assert usage_status_label(_account(rateLimited=True)) == "Rate Limited"
    assert usage_status_label(_account()) == "Active"


def test_quota_reset_date_falls_back() -> None:
    assert quota_reset_date([_account()], "2024-07-01") == "2024-07-01"
    dated = _account(quota={"chat": {"percentRemaining": 1}, "resetDate": "2024-06-01"})
    assert quota_reset_date([_account(), dated]) == "2024-06-01"


def test_label_falls_back_to_login_then_id() -> None:
    assert _account("x", login="octocat").label == "octocat"
    assert _account("x").label == "x"
    assert _account("x", label="Work", login="octocat").label == "Work"
