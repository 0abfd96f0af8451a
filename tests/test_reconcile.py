from datetime import datetime

import pytest

from errors import (
    CredentialError,
    ErrorKind,
    PrimarySourceError,
    ReconciliationError,
    SecondarySourceError,
)
from models import UsageSnapshot
from reconcile import (
    NOT_LOGGED_IN_MESSAGE,
    ErrorClass,
    classify_error,
    reconcile,
    status_message,
    updated_message,
)

HTTP_401 = PrimarySourceError(ErrorKind.HTTP, 'API error 401: {"error":"unauthorized"}', status=401, body="")
HTTP_500 = PrimarySourceError(ErrorKind.HTTP, "API error 500: upstream", status=500, body="upstream")
NO_TOOL = SecondarySourceError(ErrorKind.TOOL_NOT_FOUND, "ccusage not found: npx is not on PATH")


class TestReconcile:
    def test_both_succeed(self, tokens):
        snap = reconcile(42.5, tokens)
        assert snap == UsageSnapshot(
            input_tokens_used=1000, output_tokens_used=200, block_total_tokens=1500, indicator_percent=42.5,
        )

    def test_primary_percent_overrides_secondary(self):
        secondary = UsageSnapshot(input_tokens_used=1, indicator_percent=99.0)
        assert reconcile(10.0, secondary).indicator_percent == 10.0

    def test_primary_only(self):
        assert reconcile(80.0, NO_TOOL) == UsageSnapshot(indicator_percent=80.0)

    def test_secondary_only_leaves_percent_unset(self, tokens):
        snap = reconcile(HTTP_500, tokens)
        assert snap.indicator_percent is None
        assert snap.input_tokens_used == 1000
        assert snap.block_total_tokens == 1500

    def test_both_fail(self):
        with pytest.raises(ReconciliationError) as info:
            reconcile(HTTP_500, NO_TOOL)
        assert info.value.primary_error is HTTP_500
        assert info.value.secondary_error is NO_TOOL
        assert info.value.kind is ErrorKind.BOTH_FAILED

    def test_both_fail_surfaces_primary(self):
        with pytest.raises(ReconciliationError) as info:
            reconcile(HTTP_500, NO_TOOL)
        assert info.value.surfaced is HTTP_500
        assert str(info.value) == "API error 500: upstream"

    def test_both_fail_empty_primary_surfaces_secondary(self):
        with pytest.raises(ReconciliationError) as info:
            reconcile(RuntimeError(""), NO_TOOL)
        assert info.value.surfaced is NO_TOOL

    def test_does_not_mutate_inputs(self, tokens):
        reconcile(42.5, tokens)
        assert tokens.indicator_percent is None


class TestClassifyError:
    @pytest.mark.parametrize("kind", [ErrorKind.NOT_FOUND, ErrorKind.PARSE_ERROR, ErrorKind.EMPTY_TOKEN])
    def test_credential_errors_are_not_logged_in(self, kind):
        assert classify_error(CredentialError(kind, "x")) is ErrorClass.NOT_LOGGED_IN

    def test_unauthorized_is_not_logged_in(self):
        assert classify_error(HTTP_401) is ErrorClass.NOT_LOGGED_IN

    def test_forbidden_is_not_logged_in(self):
        err = PrimarySourceError(ErrorKind.HTTP, "API error 403: nope", status=403)
        assert classify_error(err) is ErrorClass.NOT_LOGGED_IN

    def test_other_errors(self):
        assert classify_error(HTTP_500) is ErrorClass.OTHER
        assert classify_error(NO_TOOL) is ErrorClass.OTHER
        assert classify_error(PrimarySourceError(ErrorKind.NO_DATA, "no five_hour data in response")) is ErrorClass.OTHER

    def test_classifies_surfaced_error_of_combined_failure(self):
        cred = CredentialError(ErrorKind.NOT_FOUND, "cannot read credentials: missing")
        assert classify_error(ReconciliationError(cred, NO_TOOL)) is ErrorClass.NOT_LOGGED_IN


class TestMessages:
    def test_not_logged_in_text(self):
        cred = CredentialError(ErrorKind.EMPTY_TOKEN, "no access token found")
        assert status_message(ReconciliationError(cred, NO_TOOL)) == NOT_LOGGED_IN_MESSAGE
        assert NOT_LOGGED_IN_MESSAGE == "Error: Claude not logged in"

    def test_primary_text_verbatim(self):
        assert status_message(ReconciliationError(HTTP_500, NO_TOOL)) == "Error: API error 500: upstream"

    def test_secondary_text_when_primary_empty(self):
        msg = status_message(ReconciliationError(RuntimeError(""), NO_TOOL))
        assert msg == "Error: ccusage not found: npx is not on PATH"

    def test_updated(self):
        assert updated_message(datetime(2026, 10, 17, 9, 5, 3)) == "Updated: 09:05:03"
