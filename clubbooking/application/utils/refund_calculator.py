"""
Refund calculation for customer cancellations.

Pure functions only: the caller supplies the clock reading and the policy, so
the same inputs always produce the same decision.
"""

from __future__ import annotations

import math
from datetime import datetime

from clubbooking.application.exceptions import RefundPolicyError
from clubbooking.domain.entities.refund_policy import RefundDecision, RefundPolicy, RefundRule

SECONDS_PER_DAY = 24 * 60 * 60


def format_price(pence: int) -> str:
    return f"£{pence / 100:.2f}"


def calculate_days_until_session(session_start: datetime, now: datetime) -> int:
    """Whole days until the session, rounded up so a session 4.5 days away counts as 5."""
    diff = (session_start - now).total_seconds()
    return math.ceil(diff / SECONDS_PER_DAY)


def validate_refund_policy(policy: RefundPolicy) -> list[str]:
    errors: list[str] = []

    if not policy.name or not policy.name.strip():
        errors.append("Policy name is required")

    if not policy.rules:
        errors.append("At least one refund rule is required")
        return errors

    for index, rule in enumerate(policy.rules, start=1):
        if rule.days_before_session < 0:
            errors.append(f"Rule {index}: Days before session cannot be negative")
        if rule.refund_percentage < 0 or rule.refund_percentage > 100:
            errors.append(f"Rule {index}: Refund percentage must be between 0 and 100")

    if not any(rule.days_before_session == 0 for rule in policy.rules):
        errors.append("A rule for 0 days before session is required")

    days = [rule.days_before_session for rule in policy.rules]
    if len(days) != len(set(days)):
        errors.append("Duplicate days before session values are not allowed")

    return errors


def find_applicable_rule(days_until_session: int, policy: RefundPolicy) -> RefundRule | None:
    for rule in policy.sorted_rules():
        if days_until_session >= rule.days_before_session:
            return rule
    return None


def calculate_refund(
    amount: int,
    session_start: datetime,
    now: datetime,
    policy: RefundPolicy,
) -> RefundDecision:
    """
    Decide how much of `amount` (pence) is refunded for a cancellation at `now`.

    Raises RefundPolicyError when the policy has no catch-all 0-day rule or
    carries out-of-range values; a broken policy is never silently defaulted.
    """
    errors = validate_refund_policy(policy)
    if errors:
        raise RefundPolicyError(f"Invalid refund policy '{policy.id}': " + "; ".join(errors))

    days_until_session = calculate_days_until_session(session_start, now)

    if days_until_session < 0:
        return RefundDecision(
            refund_amount=0,
            refund_percentage=0,
            days_until_session=days_until_session,
            reason="Session has already occurred. No refund available.",
        )

    rule = find_applicable_rule(days_until_session, policy)
    if rule is None:
        raise RefundPolicyError(f"Refund policy '{policy.id}' has no rule for {days_until_session} days")

    refund_amount = _percentage_of(amount, rule.refund_percentage)
    return RefundDecision(
        refund_amount=refund_amount,
        refund_percentage=rule.refund_percentage,
        days_until_session=days_until_session,
        reason=_refund_reason(days_until_session, rule.refund_percentage, refund_amount, amount),
        applied_rule=rule,
    )


def refund_schedule_preview(amount: int, policy: RefundPolicy) -> list[dict[str, int]]:
    return [
        {
            "days_before_session": rule.days_before_session,
            "refund_percentage": rule.refund_percentage,
            "refund_amount": _percentage_of(amount, rule.refund_percentage),
        }
        for rule in policy.sorted_rules()
    ]


def _percentage_of(amount: int, percentage: int) -> int:
    # integer half-up rounding, amounts are never negative
    return (max(0, amount) * percentage + 50) // 100


def _refund_reason(days: int, percentage: int, refund_amount: int, amount: int) -> str:
    if percentage == 100:
        return f"Full refund of {format_price(refund_amount)}. Cancelled {days} days before the session."
    if percentage == 0:
        return f"No refund available. Cancelled only {days} days before the session."
    return (
        f"{percentage}% refund ({format_price(refund_amount)} of {format_price(amount)}). "
        f"Cancelled {days} days before the session."
    )
