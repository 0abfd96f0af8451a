import json
import logging
import urllib.error
import urllib.request

from pydantic import ValidationError

import config
from collectors.credentials import load_credential
from errors import ErrorKind, PrimarySourceError
from models import Credential, OAuthUsage

log = logging.getLogger(__name__)

ANTHROPIC_BETA = "oauth-2025-04-20"
CLIENT_USER_AGENT = "claude-code/2.0.32"


def fetch_utilization(credential: Credential, timeout: float | None = None) -> float:
    """Query Claude's live usage API for the 5h window utilization percentage.

    One request, no retries. A ``five_hour`` entry reporting 0 is a valid
    answer; a response without that entry is not.
    """
    req = urllib.request.Request(
        config.USAGE_API_URL,
        headers={
            "Authorization": f"Bearer {credential.access_token}",
            "anthropic-beta": ANTHROPIC_BETA,
            "User-Agent": CLIENT_USER_AGENT,
        },
        method="GET",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout or config.HTTP_TIMEOUT) as resp:
            status = resp.status
            body = resp.read()
    except urllib.error.HTTPError as exc:
        text = exc.read().decode("utf-8", errors="replace")
        log.debug("Usage API returned %s", exc.code)
        raise PrimarySourceError(
            ErrorKind.HTTP, f"API error {exc.code}: {text}", status=exc.code, body=text,
        ) from exc
    except (urllib.error.URLError, OSError) as exc:
        log.debug("Usage API call failed: %s", exc)
        raise PrimarySourceError(ErrorKind.NETWORK, f"API request failed: {exc}") from exc

    if status != 200:
        text = body.decode("utf-8", errors="replace")
        raise PrimarySourceError(ErrorKind.HTTP, f"API error {status}: {text}", status=status, body=text)

    try:
        usage = OAuthUsage.model_validate(json.loads(body))
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise PrimarySourceError(ErrorKind.PARSE_ERROR, f"cannot parse response: {exc}") from exc

    if usage.five_hour is None:
        raise PrimarySourceError(ErrorKind.NO_DATA, "no five_hour data in response")
    return usage.five_hour.utilization


def fetch_primary() -> float:
    # Credentials are re-read every cycle so a fresh login is picked up.
    return fetch_utilization(load_credential())
