import logging
import shutil
import subprocess

from collectors.ccusage import hidden_console_kwargs

log = logging.getLogger(__name__)

NPX_MISSING = "Node.js/npm not found. Install Node.js first."
CCUSAGE_MISSING = "ccusage not found. Run: npm i -g ccusage"
NOT_LOGGED_IN = "Claude CLI not logged in. Run: claude auth login"
READY = "Ready — click Refresh"


def _probe(argv: list[str]) -> subprocess.CompletedProcess | None:
    # which() honours PATHEXT, so Windows .cmd shims like npx.cmd are found.
    exe = shutil.which(argv[0])
    if exe is None:
        log.debug("%s is not on PATH", argv[0])
        return None
    try:
        return subprocess.run([exe, *argv[1:]], capture_output=True, text=True, errors="replace",
                              **hidden_console_kwargs())
    except OSError as exc:
        log.debug("%s could not be started: %s", argv[0], exc)
        return None


def check_dependencies() -> str:
    """One-shot startup check of npx, ccusage and the Claude CLI login."""
    if shutil.which("npx") is None:
        return NPX_MISSING

    result = _probe(["npx", "--yes", "ccusage@latest", "--version"])
    if result is None or result.returncode != 0:
        return CCUSAGE_MISSING

    result = _probe(["claude", "auth", "status"])
    if result is None or result.returncode != 0 or "loggedIn" not in result.stdout:
        return NOT_LOGGED_IN

    return READY
