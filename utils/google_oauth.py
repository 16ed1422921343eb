import logging
from urllib.parse import urlencode

import requests
from flask import current_app

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

SCOPES = [
    "openid",
    "profile",
    "email",
    "https://www.googleapis.com/auth/calendar",
]


class GoogleOAuthError(Exception):
    pass


def authorization_url() -> str:
    """Consent screen URL. Stateless: no server-side state is kept between redirect and callback."""
    params = {
        "client_id": current_app.config.get("GOOGLE_CLIENT_ID"),
        "redirect_uri": current_app.config.get("GOOGLE_REDIRECT_URI"),
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(code: str) -> str:
    """Exchanges an authorization code for a Google access token."""
    if not code:
        raise GoogleOAuthError("Missing authorization code")

    data = {
        "code": code,
        "client_id": current_app.config.get("GOOGLE_CLIENT_ID"),
        "client_secret": current_app.config.get("GOOGLE_CLIENT_SECRET"),
        "redirect_uri": current_app.config.get("GOOGLE_REDIRECT_URI"),
        "grant_type": "authorization_code",
    }
    try:
        response = requests.post(TOKEN_URL, data=data, timeout=10)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Error while exchanging code for token: {str(e)}")
        raise GoogleOAuthError("Token exchange failed") from e

    access_token = response.json().get("access_token")
    if not access_token:
        raise GoogleOAuthError("No access token in Google response")
    return access_token


def fetch_user_info(access_token: str) -> dict:
    """
    Returns {'id', 'email', 'name', 'avatar'} for the Google account.
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        response = requests.get(USERINFO_URL, headers=headers, timeout=10)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Error while fetching user info: {str(e)}")
        raise GoogleOAuthError("User info request failed") from e

    raw = response.json()
    email = (raw.get("email") or "").strip().lower()
    if not raw.get("sub") or not email:
        raise GoogleOAuthError("Incomplete Google profile")

    return {
        "id": raw["sub"],
        "email": email,
        "name": raw.get("name") or email,
        "avatar": raw.get("picture"),
    }
