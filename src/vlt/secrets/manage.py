import contextlib
import os
import pathlib
import subprocess
import sys
from typing import Dict, Iterator, Optional

from vlt import KeyFileExistsError
from vlt._output import output
from vlt.passphrase import PassphrasePrompt

from .encryption import EncryptedFile
from .keys import KeyPair


@contextlib.contextmanager
def unlock_key(config, prompt=None) -> Iterator[KeyPair]:
    """Load the configured key file and unlock it for the block."""
    key = KeyPair.load(config.key_file)
    if prompt is None:
        prompt = PassphrasePrompt(f"private key {config.key_file}")
    with key.unlocked(prompt()) as unlocked:
        yield unlocked


def init(config, force=False, name=None, email=None, **kw):
    """Generate a new key pair and save it to the configured key file."""
    key_file = pathlib.Path(config.key_file)
    if key_file.exists() and not force:
        # Fail before asking for a passphrase.
        raise KeyFileExistsError.from_context(key_file)
    passphrase = PassphrasePrompt(
        f"new key {key_file}", double_entry=True
    ).get()
    key = KeyPair.generate(
        name or config.name, email or config.email, passphrase
    )
    key.save(key_file, force=force)
    output.step("init", f"Key generated and saved to {key_file}")
    output.tabular("identity", key.identity)
    output.tabular("fingerprint", key.fingerprint)
    return 0


def decode(secret_file, config, **kw):
    """Decrypt a file and write the content to stdout."""
    encrypted_file = EncryptedFile(pathlib.Path(secret_file))
    with unlock_key(config) as key:
        cleartext = encrypted_file.cleartext(key)
    sys.stdout.write("Decoded content:\n")
    sys.stdout.write(cleartext)
    if not cleartext.endswith("\n"):
        sys.stdout.write("\n")
    sys.stdout.flush()
    return 0


def parse_environment(cleartext: str) -> Dict[str, str]:
    """Turn `KEY=VALUE` lines into a mapping.

    Blank lines and lines starting with `#` are ignored. Lines without
    `=` are skipped with a warning that names the line number only.

    """
    environ = {}
    for lineno, line in enumerate(cleartext.split("\n"), 1):
        if not line.strip() or line.startswith("#"):
            continue
        if "=" not in line:
            output.warn(
                f"Ignoring invalid line {lineno}: expected KEY=VALUE"
            )
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            output.warn(
                f"Ignoring invalid line {lineno}: empty variable name"
            )
            continue
        environ[key] = value.strip()
    return environ


class Shell(object):
    """Run an interactive shell and wait until it exits."""

    def __init__(self, shell_cmd):
        self.shell_cmd = shell_cmd

    def __str__(self):
        return self.shell_cmd

    def run(self, environ: Dict[str, str]) -> int:
        output.annotate(
            "Starting shell {} with {} additional variable(s)".format(
                self.shell_cmd, len(environ)
            ),
            debug=True,
        )
        env = dict(os.environ)
        env.update(environ)
        return subprocess.call([self.shell_cmd], env=env)


def env(secret_file, config, shell: Optional[str] = None, **kw):
    """Start a shell with the variables from a secret file."""
    encrypted_file = EncryptedFile(pathlib.Path(secret_file))
    with unlock_key(config) as key:
        environ = parse_environment(encrypted_file.cleartext(key))
    return Shell(shell or config.shell).run(environ)
