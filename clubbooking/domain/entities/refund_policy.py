from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RefundRule:
    days_before_session: int
    refund_percentage: int  # 0-100


@dataclass(frozen=True)
class RefundPolicy:
    id: str
    name: str
    rules: tuple[RefundRule, ...]
    description: str = ""
    is_default: bool = False

    def sorted_rules(self) -> list[RefundRule]:
        return sorted(self.rules, key=lambda r: r.days_before_session, reverse=True)


@dataclass(frozen=True)
class RefundDecision:
    refund_amount: int
    refund_percentage: int
    days_until_session: int
    reason: str
    applied_rule: RefundRule | None = None


# 7+ days: full refund, 3-6 days: half, under 3 days: nothing
DEFAULT_REFUND_POLICY = RefundPolicy(
    id="default",
    name="Standard Refund Policy",
    description="Default refund policy for session cancellations",
    rules=(
        RefundRule(days_before_session=7, refund_percentage=100),
        RefundRule(days_before_session=3, refund_percentage=50),
        RefundRule(days_before_session=0, refund_percentage=0),
    ),
    is_default=True,
)
