"""
Result types shared by the server checks and the client gate.

Every I/O failure path resolves to ``AccessDecision.fail_open()`` so the
availability-over-enforcement policy is visible where the decision is made.
"""
from dataclasses import dataclass, field
from typing import List, Optional

ALLOW = "allow"
DENY = "deny"

DEFAULT_BLOCK_REASON = "Access blocked due to suspicious activity"
DEFAULT_IP_BLOCK_REASON = "IP address blocked for suspicious activity"


@dataclass(frozen=True)
class AccessDecision:
    decision: str
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(ALLOW)

    @classmethod
    def deny(cls, reason: Optional[str] = None) -> "AccessDecision":
        return cls(DENY, reason or DEFAULT_BLOCK_REASON)

    @classmethod
    def fail_open(cls) -> "AccessDecision":
        """Used when a check could not be completed."""
        return cls.allow()

    @property
    def allowed(self) -> bool:
        return self.decision == ALLOW

    def to_dict(self) -> dict:
        out = {"allowed": self.allowed}
        if self.reason:
            out["reason"] = self.reason
        return out


@dataclass(frozen=True)
class IPSecurityCheck:
    is_blocked: bool
    block_reason: Optional[str] = None
    should_block: bool = False
    fingerprint_count: int = 0

    @classmethod
    def clear(cls, fingerprint_count: int = 0) -> "IPSecurityCheck":
        return cls(is_blocked=False, fingerprint_count=fingerprint_count)


@dataclass
class ViewCount:
    count: int = 0
    articles: List[str] = field(default_factory=list)
    # free-article allowance advertised by the server, None when absent
    max_free_articles: Optional[int] = None

    def to_dict(self) -> dict:
        out = {"count": self.count, "articles": self.articles}
        if self.max_free_articles is not None:
            out["max_free_articles"] = self.max_free_articles
        return out
