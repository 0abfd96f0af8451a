import json

import pytest

from collectors.credentials import load_credential
from errors import CredentialError, ErrorKind


def _write(path, content):
    path.write_text(content if isinstance(content, str) else json.dumps(content))
    return path


class TestLoadCredential:
    def test_reads_access_token(self, tmp_path):
        path = _write(tmp_path / ".credentials.json", {"claudeAiOauth": {"accessToken": "sk-ant-oat01-abc"}})
        assert load_credential(path).access_token == "sk-ant-oat01-abc"

    def test_missing_file(self, tmp_path):
        with pytest.raises(CredentialError) as info:
            load_credential(tmp_path / "nope.json")
        assert info.value.kind is ErrorKind.NOT_FOUND
        assert str(info.value).startswith("cannot read credentials")

    def test_not_json(self, tmp_path):
        path = _write(tmp_path / ".credentials.json", "{not json")
        with pytest.raises(CredentialError) as info:
            load_credential(path)
        assert info.value.kind is ErrorKind.PARSE_ERROR
        assert str(info.value).startswith("cannot parse credentials")

    def test_not_utf8(self, tmp_path):
        path = tmp_path / ".credentials.json"
        path.write_bytes(b'{"claudeAiOauth": {"accessToken": "\xff\xfe"}}')
        with pytest.raises(CredentialError) as info:
            load_credential(path)
        assert info.value.kind is ErrorKind.PARSE_ERROR

    def test_wrong_shape(self, tmp_path):
        path = _write(tmp_path / ".credentials.json", ["claudeAiOauth"])
        with pytest.raises(CredentialError) as info:
            load_credential(path)
        assert info.value.kind is ErrorKind.PARSE_ERROR

    def test_empty_token(self, tmp_path):
        path = _write(tmp_path / ".credentials.json", {"claudeAiOauth": {"accessToken": ""}})
        with pytest.raises(CredentialError) as info:
            load_credential(path)
        assert info.value.kind is ErrorKind.EMPTY_TOKEN
        assert str(info.value) == "no access token found"

    def test_missing_oauth_section_is_empty_token(self, tmp_path):
        path = _write(tmp_path / ".credentials.json", {})
        with pytest.raises(CredentialError) as info:
            load_credential(path)
        assert info.value.kind is ErrorKind.EMPTY_TOKEN

    def test_default_path_comes_from_config(self, tmp_path, monkeypatch):
        import config

        path = _write(tmp_path / "creds.json", {"claudeAiOauth": {"accessToken": "tok"}})
        monkeypatch.setattr(config, "CREDENTIALS_PATH", path)
        assert load_credential().access_token == "tok"
