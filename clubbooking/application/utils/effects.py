from __future__ import annotations

import logging
from typing import Any, Callable

from clubbooking.application.exceptions import ExternalServiceError
from clubbooking.domain.entities.effect import EffectOutcome


def attempt(
    name: str,
    action: Callable[[], Any],
    logger: logging.Logger,
    **context: Any,
) -> EffectOutcome:
    """
    Run a best-effort call to an external service.

    The outcome is returned, never raised: callers branch on it and carry on
    with their own commit whatever happened at the provider.
    """
    try:
        value = action()
    except ExternalServiceError as e:
        logger.error(f"{name} failed", extra={**context, "error": str(e)})
        return EffectOutcome.failure(name, str(e), **context)
    return EffectOutcome.ok(name, value, **context)
