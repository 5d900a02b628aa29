"""Observability port used by the billing use cases."""

from __future__ import annotations

import logging
from typing import Any, Protocol


class Observer(Protocol):
    """Sink for domain events and side-effect failures."""

    def record(self, event: str, **fields: Any) -> None:
        ...

    def side_effect_failed(
        self, effect: str, error: BaseException, **fields: Any
    ) -> None:
        ...


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in sorted(fields.items()))


class LoggingObserver:
    """Observer writing to the standard logging module."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("workshop_billing.billing")

    def record(self, event: str, **fields: Any) -> None:
        self._logger.info("%s %s", event, _format_fields(fields))

    def side_effect_failed(
        self, effect: str, error: BaseException, **fields: Any
    ) -> None:
        self._logger.error(
            "side effect %s failed: %s %s",
            effect,
            error,
            _format_fields(fields),
            exc_info=error,
        )


__all__ = ["LoggingObserver", "Observer"]
