"""Token validation through a remote auth-service deployment."""

from __future__ import annotations

import json
import logging
from uuid import UUID
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from backend.errors import UnauthorizedError


logger = logging.getLogger(__name__)

REQUIRED_AUTH_USER_ID_FIELD = "id"


def _is_uuid_like(value: str) -> bool:
    try:
        UUID(value)
    except (ValueError, TypeError):
        return False
    return True


class RemoteTokenVerifier:
    """Resolve bearer tokens by calling `GET <auth_service_url>?action=verify`."""

    def __init__(self, *, auth_service_url: str, timeout_seconds: float = 10.0) -> None:
        self._url = auth_service_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def verify(self, token: str) -> UUID:
        request = Request(
            url=f"{self._url}?action=verify",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            method="GET",
        )

        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:  # noqa: S310 - trusted auth-service URL from env
                if response.status != 200:
                    raise UnauthorizedError("Authentication failed: token verification failed")
                payload = json.loads(response.read().decode("utf-8"))
        except HTTPError as exc:
            raise UnauthorizedError("Authentication failed: token verification failed") from exc
        except URLError as exc:
            logger.warning("auth_service_unreachable url=%s reason=%s", self._url, exc.reason)
            raise UnauthorizedError("Authentication failed: auth service unreachable") from exc
        except json.JSONDecodeError as exc:
            raise UnauthorizedError("Authentication failed: invalid auth service response") from exc

        if not isinstance(payload, dict) or payload.get("success") is not True:
            raise UnauthorizedError("Authentication failed: token verification failed")
        user = payload.get("user")
        user_id = user.get(REQUIRED_AUTH_USER_ID_FIELD) if isinstance(user, dict) else None
        if not isinstance(user_id, str) or not _is_uuid_like(user_id):
            raise UnauthorizedError("Authentication failed: invalid user data from auth service")
        return UUID(user_id)
