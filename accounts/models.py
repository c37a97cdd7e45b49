"""Account pool data model and the normalizers that build it from API payloads

Quota data reaches the console in two shapes: the account-pool endpoints send
``{remaining, entitlement, percentRemaining, unlimited}`` while the Copilot
usage endpoint sends ``{quota_remaining, entitlement, percent_remaining,
unlimited}``. Both are folded into one ``QuotaSnapshot`` here so nothing
downstream has to care which endpoint a snapshot came from.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class QuotaSnapshot:
    """Remaining allowance for one quota dimension"""
    remaining: Optional[float] = None
    limit: Optional[float] = None
    percent_remaining: Optional[float] = None
    unlimited: bool = False
    reset_date: Optional[str] = None


@dataclass(frozen=True)
class QuotaView:
    chat: Optional[QuotaSnapshot] = None
    completions: Optional[QuotaSnapshot] = None
    premium_interactions: Optional[QuotaSnapshot] = None
    reset_date: Optional[str] = None

    def snapshots(self) -> Tuple[Optional[QuotaSnapshot], ...]:
        return (self.chat, self.completions, self.premium_interactions)


@dataclass(frozen=True)
class Account:
    """One upstream account as reported by the gateway"""
    id: str
    label: str
    active: bool = True
    paused: bool = False
    paused_reason: Optional[str] = None
    rate_limited: bool = False
    quota: Optional[QuotaView] = None
    request_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    last_used: Optional[float] = None


@dataclass(frozen=True)
class AccountPoolState:
    """Server-confirmed pool state; never patched in place"""
    enabled: bool = False
    strategy: str = "sticky"
    accounts: Tuple[Account, ...] = field(default_factory=tuple)
    current_account_id: Optional[str] = None
    configured_count: int = 0

    def __post_init__(self):
        ids = [account.id for account in self.accounts]
        if len(ids) != len(set(ids)):
            raise ValueError("account ids must be unique")
        if self.current_account_id is not None and self.current_account_id not in ids:
            raise ValueError(f"current account {self.current_account_id} is not in the pool")

    def get(self, account_id: str) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    @property
    def current_account(self) -> Optional[Account]:
        if self.current_account_id is None:
            return None
        return self.get(self.current_account_id)


class _QuotaSnapshotPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    remaining: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("remaining", "quota_remaining")
    )
    limit: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("entitlement", "limit")
    )
    percent_remaining: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("percentRemaining", "percent_remaining")
    )
    unlimited: bool = False


class _AccountPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    login: Optional[str] = None
    label: Optional[str] = None
    active: bool = True
    paused: Optional[bool] = False
    paused_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("pausedReason", "paused_reason")
    )
    rate_limited: Optional[bool] = Field(
        default=False, validation_alias=AliasChoices("rateLimited", "rate_limited")
    )
    quota: Optional[Dict[str, Any]] = None
    request_count: Optional[int] = Field(
        default=0, validation_alias=AliasChoices("requestCount", "request_count")
    )
    error_count: Optional[int] = Field(
        default=0, validation_alias=AliasChoices("errorCount", "error_count")
    )
    last_error: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("lastError", "last_error")
    )
    last_used: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lastUsed", "last_used")
    )


_QUOTA_KEYS = {
    "chat": ("chat",),
    "completions": ("completions",),
    "premium_interactions": ("premiumInteractions", "premium_interactions"),
}


def normalize_snapshot(raw: Any, reset_date: Optional[str] = None) -> Optional[QuotaSnapshot]:
    """Build a QuotaSnapshot from either payload shape; None if absent"""
    if not isinstance(raw, dict):
        return None
    parsed = _QuotaSnapshotPayload.model_validate(raw)
    return QuotaSnapshot(
        remaining=parsed.remaining,
        limit=parsed.limit,
        percent_remaining=parsed.percent_remaining,
        unlimited=parsed.unlimited,
        reset_date=raw.get("resetDate") or raw.get("reset_date") or reset_date,
    )


def normalize_quota(raw: Any) -> Optional[QuotaView]:
    """Build a QuotaView from an account ``quota`` object or a ``quota_snapshots`` object

    Returns None when no quota data is present at all.
    """
    if not isinstance(raw, dict):
        return None
    reset_date = raw.get("resetDate") or raw.get("quota_reset_date")
    snapshots = {}
    for name, keys in _QUOTA_KEYS.items():
        value = next((raw[k] for k in keys if k in raw), None)
        snapshots[name] = normalize_snapshot(value, reset_date)
    return QuotaView(reset_date=reset_date, **snapshots)


def normalize_account(raw: Dict[str, Any]) -> Account:
    """Build an Account from a gateway account payload

    Raises:
        ValueError: if the payload lacks an id or has fields of the wrong type
    """
    parsed = _AccountPayload.model_validate(raw)
    return Account(
        id=parsed.id,
        label=parsed.label or parsed.login or parsed.id,
        active=parsed.active,
        paused=bool(parsed.paused),
        paused_reason=parsed.paused_reason,
        rate_limited=bool(parsed.rate_limited),
        quota=normalize_quota(parsed.quota),
        request_count=parsed.request_count or 0,
        error_count=parsed.error_count or 0,
        last_error=parsed.last_error,
        last_used=parsed.last_used,
    )


def normalize_accounts(raw: Any) -> Tuple[Account, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValueError("accounts must be a list")
    return tuple(normalize_account(item) for item in raw)

