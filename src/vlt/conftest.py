import pytest

from vlt._output import NullBackend, output
from vlt.passphrase import PassphrasePrompt
from vlt.secrets.keys import KeyPair, create_key


@pytest.fixture(autouse=True)
def reset_output(monkeypatch):
    monkeypatch.setattr(output, "backend", NullBackend())
    monkeypatch.setattr(output, "enable_debug", False)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("VLT_PASSPHRASE", "VLT_KEY_FILE", "EDITOR", "SHELL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(PassphrasePrompt, "passphrase_cache", {})


@pytest.fixture(scope="session")
def unprotected_armor():
    """An armored key pair without a passphrase."""
    return str(create_key("User", "user@example.com"))


@pytest.fixture(scope="session")
def armored_key(unprotected_armor):
    """The same key pair, locked with passphrase `p1`."""
    return KeyPair.from_armor(unprotected_armor).lock("p1").to_armor()


@pytest.fixture(scope="session")
def other_armored_key():
    key = KeyPair(create_key("Other", "other@example.com"))
    return key.lock("p1").to_armor()


@pytest.fixture
def locked_key(armored_key):
    return KeyPair.from_armor(armored_key)


@pytest.fixture
def key(locked_key):
    """An unlocked key pair."""
    with locked_key.unlocked("p1") as key:
        yield key


@pytest.fixture
def other_key(other_armored_key):
    with KeyPair.from_armor(other_armored_key).unlocked("p1") as key:
        yield key


@pytest.fixture
def key_file(tmp_path, locked_key):
    path = tmp_path / "private.key"
    locked_key.save(path)
    return path
