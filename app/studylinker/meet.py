from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from app.studylinker.errors import AppError

logger = logging.getLogger(__name__)

MEET_SPACES_URL = "https://meet.googleapis.com/v1/spaces"
MEET_SCOPES = ["https://www.googleapis.com/auth/meetings.space.created"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class MeetError(AppError):
    code = "MEETING_ERROR"
    status_code = 502


class MeetNotConfigured(MeetError):
    code = "MEETING_NOT_CONFIGURED"
    status_code = 500


@dataclass(frozen=True)
class MeetClient:
    client_email: str
    private_key: str
    project_id: str
    timeout_seconds: int = 30

    @classmethod
    def from_config(cls, config: dict) -> "MeetClient":
        client_email = (config.get("GOOGLE_SERVICE_ACCOUNT_EMAIL") or "").strip()
        private_key = config.get("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY") or ""
        project_id = (config.get("GOOGLE_PROJECT_ID") or "").strip()
        missing = []
        if not client_email:
            missing.append("GOOGLE_SERVICE_ACCOUNT_EMAIL")
        if not private_key.strip():
            missing.append("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")
        if not project_id:
            missing.append("GOOGLE_PROJECT_ID")
        if missing:
            raise MeetNotConfigured(
                f"Google Workspace API credentials not configured. Missing environment variables: {', '.join(missing)}"
            )
        return cls(client_email=client_email, private_key=private_key, project_id=project_id)

    def _access_token(self) -> str:
        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": self.client_email,
                "private_key": self.private_key,
                "project_id": self.project_id,
                "token_uri": TOKEN_URI,
            },
            scopes=MEET_SCOPES,
        )
        try:
            credentials.refresh(GoogleAuthRequest())
        except (GoogleAuthError, ValueError) as e:
            raise MeetError(f"Failed to get access token: {e}") from e
        return credentials.token

    def create_space(self, title: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"config": {"accessType": "OPEN", "entryPointAccess": "CREATOR_APP_ONLY"}}
        if title:
            body["spaceConfig"] = {"name": title}
        try:
            resp = requests.post(
                MEET_SPACES_URL,
                headers={"Authorization": f"Bearer {self._access_token()}"},
                json=body,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise MeetError(f"Google Meet request failed: {e}") from e
        if not resp.ok:
            raise MeetError(f"HTTP {resp.status_code} from Google Meet: {resp.text[:300]}")
        return resp.json()


def create_meeting(config: dict, title: str | None = None) -> dict[str, Any]:
    """
    Create a Meet space. Returns ``meeting_uri``, ``meeting_code`` and ``meeting_id``.
    """
    space = MeetClient.from_config(config).create_space(title)
    code = space.get("meetingCode")
    uri = space.get("meetingUri")
    if code:
        uri = f"https://meet.google.com/{code}"
    logger.info("Created Meet space %s", space.get("name"))
    return {"meeting_uri": uri, "meeting_code": code, "meeting_id": space.get("name")}
