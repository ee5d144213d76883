# karnya/services/mailer.py
import logging
from typing import Protocol

from karnya.core.config import settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_verification(self, email: str, token: str) -> None: ...

    def send_password_reset(self, email: str, token: str) -> None: ...


class LoggingMailer:
    """Writes the links to the log instead of delivering them."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def send_verification(self, email: str, token: str) -> None:
        logger.info("Verification URL for %s: %s/verify-email?token=%s", email, self.base_url, token)

    def send_password_reset(self, email: str, token: str) -> None:
        logger.info("Reset URL for %s: %s/reset-password/%s", email, self.base_url, token)


def get_mailer() -> Mailer:
    return LoggingMailer(settings.FRONTEND_URL)
