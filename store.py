import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

import config
from errors import ErrorKind, PersistenceError
from models import DEFAULT_REFRESH, MIN_REFRESH, WidgetState

log = logging.getLogger(__name__)


class StateStore:
    """Settings plus the last snapshot, kept as one JSON record on disk."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path or config.STATE_PATH)

    def load(self) -> WidgetState:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return WidgetState()
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            log.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return WidgetState()
        if not isinstance(data, dict):
            log.warning("Ignoring state file %s: not a JSON object", self.path)
            return WidgetState()

        state = _validate_lenient(data)
        if state.refresh_interval < MIN_REFRESH:
            # Self-heals to the default, not to the floor.
            state = state.model_copy(update={"refresh_interval": DEFAULT_REFRESH})
        return state

    def save(self, state: WidgetState) -> None:
        payload = state.model_dump_json(indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.chmod(tmp, 0o600)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(ErrorKind.IO, f"cannot save state: {exc}") from exc


def _validate_lenient(data: dict) -> WidgetState:
    try:
        return WidgetState.model_validate(data)
    except ValidationError:
        pass
    # Keep every field that validates on its own, default the rest.
    good = {}
    for name in WidgetState.model_fields:
        if name not in data:
            continue
        try:
            WidgetState.model_validate({name: data[name]})
        except ValidationError:
            log.warning("Ignoring invalid %s in state file", name)
            continue
        good[name] = data[name]
    return WidgetState.model_validate(good)
