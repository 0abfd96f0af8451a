import json
import logging
from pathlib import Path

import config
from errors import CredentialError, ErrorKind
from models import Credential

log = logging.getLogger(__name__)


def load_credential(path: Path | None = None) -> Credential:
    """Read the OAuth access token Claude Code keeps in ~/.claude/.credentials.json."""
    path = path or config.CREDENTIALS_PATH
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise CredentialError(ErrorKind.NOT_FOUND, f"cannot read credentials: {exc}") from exc

    try:
        creds = json.loads(raw.decode("utf-8"))
        oauth = creds.get("claudeAiOauth") or {}
        token = oauth.get("accessToken") or ""
        if not isinstance(token, str):
            raise TypeError(f"accessToken is {type(token).__name__}, expected string")
    except (UnicodeDecodeError, json.JSONDecodeError, AttributeError, TypeError) as exc:
        raise CredentialError(ErrorKind.PARSE_ERROR, f"cannot parse credentials: {exc}") from exc

    if not token:
        log.debug("No accessToken in %s", path)
        raise CredentialError(ErrorKind.EMPTY_TOKEN, "no access token found")

    return Credential(access_token=token)
