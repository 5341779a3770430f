import os
import shlex
import stat

import mock
import pytest

from vlt import KeyFileExistsError, WrongPassphraseError
from vlt._output import output
from vlt.config import Config
from vlt.secrets.edit import main as edit_main
from vlt.secrets.encryption import EncryptedFile
from vlt.secrets.keys import KeyPair
from vlt.secrets.manage import (
    Shell,
    decode,
    env,
    init,
    parse_environment,
    unlock_key,
)


class RecordingBackend(object):
    def __init__(self):
        self.lines = []

    def line(self, message, **format):
        self.lines.append(message)

    def write(self, content, **format):
        self.lines.append(content)


@pytest.fixture
def recorded(monkeypatch):
    backend = RecordingBackend()
    monkeypatch.setattr(output, "backend", backend)
    return backend.lines


@pytest.fixture
def config(key_file):
    return Config(key_file=str(key_file))


@pytest.fixture
def secret_file(tmp_path, key):
    path = tmp_path / "secrets.env.vlt"
    EncryptedFile(path).write(b"FOO=bar\nBAZ=qux\n", key)
    return path


def test_parse_environment():
    cleartext = """\
# database
FOO=bar

  BAZ = qux
URL=http://example.com/?a=b
"""
    assert parse_environment(cleartext) == {
        "FOO": "bar",
        "BAZ": "qux",
        "URL": "http://example.com/?a=b",
    }


def test_parse_environment_later_assignments_win():
    assert parse_environment("FOO=1\nFOO=2") == {"FOO": "2"}


def test_parse_environment_warns_without_content(recorded):
    environ = parse_environment("FOO=bar\nSECRET_WITHOUT_VALUE\n=hidden\n")
    assert environ == {"FOO": "bar"}
    text = "\n".join(recorded)
    assert "line 2" in text
    assert "line 3" in text
    assert "SECRET_WITHOUT_VALUE" not in text
    assert "hidden" not in text


def test_unlock_key(config, locked_key):
    with unlock_key(config, prompt=lambda: "p1") as key:
        assert not key.locked
        assert key.fingerprint == locked_key.fingerprint


def test_unlock_key_reads_passphrase_from_environment(config, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    with unlock_key(config) as key:
        assert not key.locked


def test_unlock_key_wrong_passphrase(config):
    with pytest.raises(WrongPassphraseError):
        with unlock_key(config, prompt=lambda: "p2"):
            pass


def test_init(tmp_path, monkeypatch, recorded):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    path = tmp_path / "private.key"
    config = Config(key_file=str(path))
    assert init(config, name="Jane Doe", email="jane@example.com") == 0

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    key = KeyPair.load(path)
    assert key.identity == "Jane Doe <jane@example.com>"
    with key.unlocked("p1") as unlocked:
        assert not unlocked.locked
    assert any(key.fingerprint in line for line in recorded)


def test_init_uses_configured_identity(tmp_path, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    path = tmp_path / "private.key"
    init(Config(key_file=str(path), name="Ops", email="ops@example.com"))
    assert KeyPair.load(path).identity == "Ops <ops@example.com>"


def test_init_refuses_existing_key_file(config, key_file):
    before = key_file.read_bytes()
    with mock.patch("getpass.getpass") as getpass:
        with pytest.raises(KeyFileExistsError):
            init(config)
    getpass.assert_not_called()
    assert key_file.read_bytes() == before


def test_init_force_replaces_key_file(config, key_file, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p2")
    before = KeyPair.load(key_file).fingerprint
    init(config, force=True)
    key = KeyPair.load(key_file)
    assert key.fingerprint != before
    with key.unlocked("p2") as unlocked:
        assert not unlocked.locked


def test_decode(config, secret_file, monkeypatch, capsys):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    assert decode(str(secret_file), config) == 0
    out, err = capsys.readouterr()
    assert out == "Decoded content:\nFOO=bar\nBAZ=qux\n"


def test_decode_adds_final_newline(
    config, tmp_path, key, monkeypatch, capsys
):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    path = tmp_path / "secret.vlt"
    EncryptedFile(path).write(b"no newline", key)
    decode(str(path), config)
    out, err = capsys.readouterr()
    assert out == "Decoded content:\nno newline\n"


def test_decode_wrong_passphrase(config, secret_file, monkeypatch, capsys):
    monkeypatch.setenv("VLT_PASSPHRASE", "p2")
    with pytest.raises(WrongPassphraseError):
        decode(str(secret_file), config)
    out, err = capsys.readouterr()
    assert "FOO" not in out


def test_decode_missing_key_file(tmp_path, secret_file, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    config = Config(key_file=str(tmp_path / "missing.key"))
    with pytest.raises(FileNotFoundError):
        decode(str(secret_file), config)


def test_env(config, secret_file, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    with mock.patch.object(Shell, "run", return_value=7) as run:
        assert env(str(secret_file), config) == 7
    run.assert_called_once_with({"FOO": "bar", "BAZ": "qux"})


@pytest.mark.timeout(60)
def test_shell_sees_variables(tmp_path):
    script = tmp_path / "shell.sh"
    out = tmp_path / "out"
    script.write_text(f'#!/bin/sh\necho "$FOO" > {shlex.quote(str(out))}\n')
    script.chmod(0o755)
    assert Shell(str(script)).run({"FOO": "bar"}) == 0
    assert out.read_text() == "bar\n"


@pytest.mark.timeout(60)
def test_edit_main(config, tmp_path, key, monkeypatch):
    monkeypatch.setenv("VLT_PASSPHRASE", "p1")
    path = tmp_path / "secrets.env.vlt"
    assert edit_main(str(path), config, editor="true") == 0
    assert EncryptedFile(path).decrypt(key) == b""
