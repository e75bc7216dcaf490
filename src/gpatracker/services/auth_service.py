import logging
from typing import Any, Dict, Optional
import requests
from requests import RequestException

from gpatracker.config.settings import settings
from gpatracker.state.session_state import SessionState


logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    pass


class AppwriteAuthService:
    """Resolves the signed-in user from an Appwrite account JWT."""

    ACCOUNT_PATH = "/account"

    def __init__(self, endpoint: str, project_id: str, session: Optional[requests.Session] = None) -> None:
        if not endpoint:
            raise AuthServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AuthServiceError("Missing APPWRITE_PROJECT_ID in environment")
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.http = session or requests.Session()

    @classmethod
    def from_settings(cls) -> "AppwriteAuthService":
        return cls(settings.appwrite_endpoint, settings.appwrite_project_id)

    def current_user(self, jwt: Optional[str]) -> Optional[SessionState]:
        if not jwt or not jwt.strip():
            return None

        data = self._get(self.ACCOUNT_PATH, jwt.strip())
        if data is None:
            return None
        return self._to_session(data, jwt.strip())

    def _get(self, path: str, jwt: str) -> Optional[Dict[str, Any]]:
        url = f"{self.endpoint}{path}"
        headers = {
            "X-Appwrite-Project": self.project_id,
            "X-Appwrite-JWT": jwt,
        }
        try:
            res = self.http.get(url, headers=headers, timeout=15)
        except RequestException as exc:
            logger.warning("Account lookup failed: %s", exc)
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE") from exc

        if res.status_code == 401:
            return None

        try:
            data = res.json()
        except ValueError as exc:
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE") from exc

        if res.status_code >= 400:
            error_key = str(data.get("message") or data.get("type") or "AUTH_ERROR")
            raise AuthServiceError(error_key)

        return data

    @staticmethod
    def _to_session(data: Dict[str, Any], jwt: str) -> Optional[SessionState]:
        uid = str(data.get("$id") or "")
        if not uid:
            return None
        return SessionState(uid=uid, email=str(data.get("email") or "") or None, jwt=jwt)
