"""
Alert delivery interface for end-of-day reports.
"""

from typing import Protocol

from loguru import logger


class Alerter(Protocol):
    """Delivers a report to the operator (email, chat, ...)."""

    def send(self, subject: str, body: str) -> None:
        ...


class LogAlerter:
    """Alerter that writes reports to the log."""

    def send(self, subject: str, body: str) -> None:
        logger.info(f"{subject}\n{body}")
