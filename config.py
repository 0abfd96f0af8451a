import logging
import os
import shlex
from pathlib import Path

_ENV_PREFIX = "CLAUDE_WIDGET_"


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(_ENV_PREFIX + name, default)


def _app_data_dir() -> Path:
    if appdata := os.environ.get("APPDATA"):
        return Path(appdata) / "ClaudeTokenWidget"
    return Path.home() / ".claude-token-widget"


STATE_PATH = Path(_env("STATE_PATH") or _app_data_dir() / "config.json")
CREDENTIALS_PATH = Path(_env("CREDENTIALS_PATH") or Path.home() / ".claude" / ".credentials.json")

USAGE_API_URL = _env("USAGE_API_URL", "https://api.anthropic.com/api/oauth/usage")
HTTP_TIMEOUT = float(_env("HTTP_TIMEOUT", "10"))

CCUSAGE_COMMAND = shlex.split(_env("CCUSAGE_COMMAND", "npx --yes ccusage@latest blocks --json"))
# The ccusage subprocess runs unbounded unless this is set, unlike the HTTP call.
_ccusage_timeout = _env("CCUSAGE_TIMEOUT")
CCUSAGE_TIMEOUT = float(_ccusage_timeout) if _ccusage_timeout else None

LOG_LEVEL = _env("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
