from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EffectOutcome:
    """Result of a best-effort side effect (refund, email). Never raised, only inspected."""

    name: str
    succeeded: bool
    value: Any = None
    error: str | None = None
    skipped: bool = False
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return not self.succeeded and not self.skipped

    @staticmethod
    def ok(name: str, value: Any = None, **meta: Any) -> "EffectOutcome":
        return EffectOutcome(name=name, succeeded=True, value=value, meta=meta)

    @staticmethod
    def failure(name: str, error: str, **meta: Any) -> "EffectOutcome":
        return EffectOutcome(name=name, succeeded=False, error=error, meta=meta)

    @staticmethod
    def skip(name: str, reason: str) -> "EffectOutcome":
        return EffectOutcome(name=name, succeeded=False, skipped=True, meta={"reason": reason})
