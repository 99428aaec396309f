from typer.testing import CliRunner

from preply.apiserver.routers.auth.session_token_crypter import SessionTokenCrypter
from preply.cli.main import app
from preply.xsecrets.nacl_keyset import NaclKeyset

runner = CliRunner()


def test_create_session_keyset():
    result = runner.invoke(app, ["create-session-keyset"])
    assert result.exit_code == 0, result.output
    assert len(NaclKeyset.deserialize_base64(result.stdout.strip()).keys) == 1


def test_rotate_session_keyset():
    original = NaclKeyset.create()
    result = runner.invoke(app, ["rotate-session-keyset", original.serialize_base64()])
    assert result.exit_code == 0, result.output
    rotated = NaclKeyset.deserialize_base64(result.stdout.strip())
    assert rotated.keys[1:] == original.keys
    assert rotated.keys[0] not in original.keys


def test_rotate_session_keyset_invalid():
    result = runner.invoke(app, ["rotate-session-keyset", "not a keyset"])
    assert result.exit_code == 1


def test_inspect_session(monkeypatch):
    keyset = NaclKeyset.create()
    monkeypatch.setenv("PREPLY_SESSION_TOKEN_KEYSET", keyset.serialize_base64())
    credential = SessionTokenCrypter(60, keyset=keyset).encrypt("u1").value

    result = runner.invoke(app, ["inspect-session", credential])
    assert result.exit_code == 0, result.output
    assert "u1" in result.stdout

    result = runner.invoke(app, ["inspect-session", "ps_garbage"])
    assert result.exit_code == 1
