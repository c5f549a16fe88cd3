"""HTTP client for the auth/subscription backend.

The backend issues per-user access tokens to trusted services and reports
subscription state for a token. Failures never propagate to callers: a
token lookup that fails yields None and a status lookup that fails yields
an inactive subscription.
"""

from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from vacancy_scanner.domain.models import SubscriptionStatus
from vacancy_scanner.logging import get_logger

from .exceptions import AuthServiceError

logger = get_logger(__name__, component="auth_client")

TOKEN_PATH = "/api/auth/token"
SUBSCRIPTION_PATH = "/api/subscription/status"
SERVICE_NAME = "VACANCY"


class AuthServiceClient:
    """Credential provider and subscription checker backed by HTTP."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_access_token(self, user_id: int) -> Optional[str]:
        """Return an access token for the user, or None if none can be issued."""
        headers = {"X-API-Key": self.api_key} if self.api_key else None
        try:
            body = self._get_json(
                TOKEN_PATH,
                params={"telegramId": user_id, "service": SERVICE_NAME},
                headers=headers,
            )
        except AuthServiceError as e:
            logger.warning(
                f"Could not obtain token for user {user_id}: {e}",
                extra={"event": "auth.token.failed", "user_id": user_id, "status_code": e.status_code},
            )
            return None

        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            logger.warning(
                f"Auth service returned no token for user {user_id}",
                extra={"event": "auth.token.missing", "user_id": user_id},
            )
            return None
        return token

    def get_subscription_status(self, token: str) -> SubscriptionStatus:
        """Return the subscription state; inactive when it cannot be determined."""
        try:
            body = self._get_json(
                SUBSCRIPTION_PATH, headers={"Authorization": f"Bearer {token}"}
            )
            return SubscriptionStatus.model_validate(body if isinstance(body, dict) else {})
        except (AuthServiceError, ValidationError) as e:
            logger.warning(
                f"Subscription check failed, treating as inactive: {e}",
                extra={"event": "auth.subscription.failed"},
            )
            return SubscriptionStatus(active=False)

    def is_subscription_active(self, token: str) -> bool:
        return self.get_subscription_status(token).active

    def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise AuthServiceError(f"Request to {url} timed out after {self.timeout} seconds") from e
        except requests.exceptions.RequestException as e:
            raise AuthServiceError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 400:
            raise AuthServiceError(
                f"HTTP {response.status_code} from {url}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise AuthServiceError(f"Invalid JSON from {url}: {e}") from e
