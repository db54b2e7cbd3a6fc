"""Gmail OAuth2 for a desktop install.

``mailbrief auth`` runs the installed-app consent flow once and saves an
authorized-user token (with its refresh token) to ``~/.mailbrief/token.json``.
Later runs load that file, refresh the access token when it has expired and
write the refreshed token back.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from mailbrief.config import DEFAULT_CLIENT_SECRETS_PATH, DEFAULT_TOKEN_PATH

logger = logging.getLogger(__name__)

GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.send",
]


def save_credentials(credentials: Credentials, token_path: Optional[Path] = None) -> Path:
    path = token_path or DEFAULT_TOKEN_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credentials.to_json())
    return path


def load_credentials(token_path: Optional[Path] = None) -> Optional[Credentials]:
    """Load the saved token, refreshing it if it has expired.

    Returns None when there is no usable token file. A failed refresh
    raises ``ValueError`` so the caller can ask the user to re-run auth.
    """
    path = token_path or DEFAULT_TOKEN_PATH
    if not path.exists():
        return None

    try:
        credentials = Credentials.from_authorized_user_file(str(path), GMAIL_SCOPES)
    except (ValueError, OSError) as exc:
        logger.warning("Ignoring unreadable Gmail token %s: %s", path, exc)
        return None

    if credentials.valid:
        return credentials
    if not credentials.refresh_token:
        logger.warning("Gmail token %s has no refresh token", path)
        return None

    logger.debug("Refreshing Gmail access token")
    try:
        credentials.refresh(Request())
    except RefreshError as exc:
        raise ValueError(f"Gmail token refresh failed ({exc}). Run: mailbrief auth") from exc
    save_credentials(credentials, path)
    return credentials


def authorize(
    client_secrets_path: Optional[Path] = None,
    token_path: Optional[Path] = None,
    port: int = 0,
) -> Credentials:
    """Run the browser consent flow and save the resulting token."""
    secrets = client_secrets_path or DEFAULT_CLIENT_SECRETS_PATH
    if not secrets.exists():
        raise FileNotFoundError(
            f"Gmail OAuth client secrets not found at {secrets}. "
            "Download a Desktop app OAuth client from Google Cloud Console and save it there."
        )

    flow = InstalledAppFlow.from_client_secrets_file(str(secrets), scopes=GMAIL_SCOPES)
    credentials = flow.run_local_server(port=port)
    saved = save_credentials(credentials, token_path)
    logger.info("Saved Gmail token to %s", saved)
    return credentials
