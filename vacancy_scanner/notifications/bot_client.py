"""HTTP client for the bot message relay.

The subscription backend owns the Telegram bot; this service only asks it to
forward a text to the user identified by the bearer token.
"""

import logging
from typing import Optional

import requests

from .models import BotDeliveryError

logger = logging.getLogger(__name__)

NOTIFY_PATH = "/api/bot/notify"


class BotNotifyClient:
    """Sends bot messages through ``POST /api/bot/notify``.

    Designed to be easily mockable: pass a ``requests.Session`` double as
    ``session`` in tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_message(self, user_id: int, text: str, token: str) -> bool:
        """Deliver ``text`` to the user's chat.

        Returns:
            True when the relay accepted the message, False otherwise
        """
        try:
            self._post(text, token)
        except BotDeliveryError as e:
            logger.warning(
                f"Bot message to user {user_id} failed: {e}",
                extra={"event": "notification.bot.failed", "user_id": user_id},
            )
            return False

        logger.debug(
            f"Bot message delivered to user {user_id}",
            extra={"event": "notification.bot.sent", "user_id": user_id},
        )
        return True

    def _post(self, text: str, token: str) -> None:
        url = f"{self.base_url}{NOTIFY_PATH}"
        try:
            response = self.session.post(
                url,
                json={"message": text},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise BotDeliveryError(f"Bot relay timed out after {self.timeout} seconds") from e
        except requests.exceptions.RequestException as e:
            raise BotDeliveryError(f"Bot relay request failed: {e}") from e

        if response.status_code >= 400:
            raise BotDeliveryError(f"Bot relay answered HTTP {response.status_code}")
