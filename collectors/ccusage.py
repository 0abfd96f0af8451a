import json
import logging
import shutil
import subprocess
import sys

from pydantic import ValidationError

import config
from errors import ErrorKind, SecondarySourceError
from models import UsageBlocks, UsageSnapshot, UsageWindow

log = logging.getLogger(__name__)


def hidden_console_kwargs() -> dict:
    """subprocess.run kwargs that keep a console window from flashing up on Windows."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {}


def resolve_executable(command: list[str]) -> list[str]:
    exe = shutil.which(command[0]) if command else None
    if exe is None:
        name = command[0] if command else "ccusage"
        raise SecondarySourceError(ErrorKind.TOOL_NOT_FOUND, f"ccusage not found: {name} is not on PATH")
    return [exe, *command[1:]]


def select_active_window(blocks: list[UsageWindow]) -> UsageWindow | None:
    # First active, non-gap block wins; ccusage lists at most one in practice.
    for block in blocks:
        if block.is_active and not block.is_gap:
            return block
    return None


def parse_blocks(output: str | bytes) -> UsageSnapshot:
    try:
        usage = UsageBlocks.model_validate(json.loads(output))
        active = select_active_window(usage.blocks)
        if active is None:
            log.debug("No active block among %d ccusage blocks", len(usage.blocks))
            return UsageSnapshot()
        return UsageSnapshot(
            input_tokens_used=active.token_counts.input_tokens,
            output_tokens_used=active.token_counts.output_tokens,
            block_total_tokens=active.total_tokens,
        )
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
        raise SecondarySourceError(
            ErrorKind.PARSE_ERROR, f"failed to parse ccusage blocks JSON: {exc}",
        ) from exc


def fetch_blocks(command: list[str] | None = None, timeout: float | None = None) -> UsageSnapshot:
    """Token counts of the current 5h block from ``ccusage blocks --json``.

    Unlike the usage API call this has no timeout unless one is given or
    configured through CLAUDE_WIDGET_CCUSAGE_TIMEOUT.
    """
    argv = resolve_executable(command or config.CCUSAGE_COMMAND)
    if timeout is None:
        timeout = config.CCUSAGE_TIMEOUT
    try:
        # Bytes, not text: undecodable output must surface as a parse error.
        raw = subprocess.run(
            argv, capture_output=True, timeout=timeout, **hidden_console_kwargs(),
        )
    except subprocess.TimeoutExpired as exc:
        raise SecondarySourceError(
            ErrorKind.PROCESS, f"ccusage blocks failed: timed out after {exc.timeout}s",
        ) from exc
    except OSError as exc:
        raise SecondarySourceError(ErrorKind.PROCESS, f"ccusage blocks failed: {exc}") from exc

    if raw.returncode != 0:
        log.debug("ccusage stderr: %s", raw.stderr.decode("utf-8", errors="replace").strip())
        raise SecondarySourceError(
            ErrorKind.PROCESS, f"ccusage blocks failed: exit status {raw.returncode}",
        )
    return parse_blocks(raw.stdout)
