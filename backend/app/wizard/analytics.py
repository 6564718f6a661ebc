"""Analytics sinks. Emission is fire-and-forget: a failing sink is logged
and otherwise ignored."""

import logging

logger = logging.getLogger("quotewizard.analytics")


class LoggingAnalytics:
    """Writes events to the analytics logger; keeps them for inspection."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def track(self, name: str, params: dict) -> None:
        self.events.append((name, dict(params)))
        logger.info("event %s %s", name, params)


def emit(sink, name: str, params: dict) -> None:
    if sink is None:
        return
    try:
        sink.track(name, params)
    except Exception:
        logger.warning("Analytics event %s dropped", name, exc_info=True)
