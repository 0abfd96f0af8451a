"""Merge the usage API percentage with ccusage token counts.

The API is the only source of the percentage and ccusage the only source of
token counts; neither is ever derived from the other.
"""
from datetime import datetime
from enum import Enum

from errors import CredentialError, ErrorKind, PrimarySourceError, ReconciliationError
from models import UsageSnapshot

NOT_LOGGED_IN_MESSAGE = "Error: Claude not logged in"
REFRESHING_MESSAGE = "Refreshing…"

_AUTH_STATUSES = {401, 403}


class ErrorClass(Enum):
    NOT_LOGGED_IN = "not_logged_in"
    OTHER = "other"


def reconcile(
    primary: float | Exception,
    secondary: UsageSnapshot | Exception,
) -> UsageSnapshot:
    """Combine one cycle's results; each argument is a value or the error raised.

    Raises ReconciliationError only when both sources failed.
    """
    primary_failed = isinstance(primary, Exception)
    secondary_failed = isinstance(secondary, Exception)

    if primary_failed and secondary_failed:
        raise ReconciliationError(primary, secondary)
    if primary_failed:
        return secondary.model_copy(update={"indicator_percent": None})
    if secondary_failed:
        return UsageSnapshot(indicator_percent=primary)
    return secondary.model_copy(update={"indicator_percent": primary})


def classify_error(err: Exception) -> ErrorClass:
    if isinstance(err, ReconciliationError):
        err = err.surfaced
    if isinstance(err, CredentialError):
        return ErrorClass.NOT_LOGGED_IN
    if isinstance(err, PrimarySourceError) and err.kind is ErrorKind.HTTP and err.status in _AUTH_STATUSES:
        return ErrorClass.NOT_LOGGED_IN
    return ErrorClass.OTHER


def status_message(err: Exception) -> str:
    if classify_error(err) is ErrorClass.NOT_LOGGED_IN:
        return NOT_LOGGED_IN_MESSAGE
    return f"Error: {err}"


def updated_message(now: datetime | None = None) -> str:
    return "Updated: " + (now or datetime.now()).strftime("%H:%M:%S")
