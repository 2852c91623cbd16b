"""
Gmail transport: delivers composed pitch emails through the Gmail API.

Handles:
  - OAuth2 authentication (browser-based first run, token cached for refresh)
  - Building an HTML MIME message with custom headers (X-Tracking-ID)
  - Sending via users.messages.send and returning the Gmail message id

Gmail API calls are synchronous (google-api-python-client is not async);
each call runs in an executor so it doesn't block the event loop.
"""
from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional

from founderreach.config import Settings, get_settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class TransportError(Exception):
    """Raised when the mail transport cannot deliver a message."""


@dataclass
class OutgoingEmail:
    to: str
    sender: str
    subject: str
    html: str
    headers: dict[str, str] = field(default_factory=dict)


# ── OAuth / service init ───────────────────────────────────────────────────────

def get_gmail_service(settings: Optional[Settings] = None):
    """
    Return an authenticated Gmail API service object.

    First run opens a browser for OAuth consent. Subsequent runs silently
    refresh the cached token at gmail_token_path.

    Raises:
        FileNotFoundError: If gmail_credentials_path does not exist.
    """
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials
    from google_auth_oauthlib.flow import InstalledAppFlow
    from googleapiclient.discovery import build

    settings = settings or get_settings()
    creds_path = Path(settings.gmail_credentials_path).expanduser()
    token_path = Path(settings.gmail_token_path).expanduser()

    if not creds_path.exists():
        raise FileNotFoundError(
            f"Gmail credentials not found at {creds_path}\n"
            "Setup: Google Cloud Console → Enable Gmail API → Create OAuth Desktop credentials\n"
            f"→ Download client_secret.json → save as {creds_path}"
        )

    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(str(creds_path), SCOPES)
            creds = flow.run_local_server(port=0)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json())

    return build("gmail", "v1", credentials=creds)


# ── MIME message builder ───────────────────────────────────────────────────────

def build_raw_message(message: OutgoingEmail, from_name: str = "") -> str:
    """Build a base64url-encoded RFC 2822 message for the Gmail API send endpoint."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = message.subject
    msg["To"] = message.to
    msg["From"] = f"{from_name} <{message.sender}>" if from_name else message.sender
    for name, value in message.headers.items():
        msg[name] = value
    msg.attach(MIMEText(message.html, "html", "utf-8"))
    return base64.urlsafe_b64encode(msg.as_bytes()).decode()


# ── Transport ─────────────────────────────────────────────────────────────────

class GmailTransport:
    """
    Mail transport backed by the Gmail API.

    The service is created lazily on first send so that dry-run pipelines
    never trigger the OAuth flow.
    """

    def __init__(self, service=None, settings: Optional[Settings] = None):
        self._service = service
        self.settings = settings or get_settings()

    def _get_service(self):
        if self._service is None:
            self._service = get_gmail_service(self.settings)
        return self._service

    async def send(self, message: OutgoingEmail) -> Optional[str]:
        """Send `message` and return the Gmail message id. Raises TransportError."""
        if not message.sender:
            raise TransportError("Sender address not configured. Set FROM_EMAIL in .env")

        raw = build_raw_message(message, from_name=self.settings.sender_name)
        loop = asyncio.get_running_loop()
        try:
            service = await loop.run_in_executor(None, self._get_service)
            result = await loop.run_in_executor(
                None,
                lambda: service.users().messages().send(userId="me", body={"raw": raw}).execute(),
            )
        except Exception as e:
            raise TransportError(f"Gmail send failed: {e}") from e

        message_id = (result or {}).get("id")
        logger.debug("Gmail accepted message %s for %s", message_id, message.to)
        return message_id
