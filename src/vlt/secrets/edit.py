"""Securely edit encrypted secret files."""

import contextlib
import enum
import os
import os.path
import pathlib
import shlex
import subprocess
import tempfile
from typing import Iterator, Optional

from vlt import EditorProcessError
from vlt._output import output

from .encryption import EncryptedFile
from .keys import KeyPair
from .manage import unlock_key


class State(enum.Enum):
    START = "start"
    LOADED = "loaded"
    INITIALIZED = "initialized"
    EDITING = "editing"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class Editor(object):
    """Run an external editor on a file and wait until it exits."""

    def __init__(self, editor_cmd):
        self.editor_cmd = editor_cmd

    def __str__(self):
        return self.editor_cmd

    def run(self, path) -> int:
        args = [self.editor_cmd + " " + shlex.quote(str(path))]
        output.annotate(
            "Running editor with command: {}".format(args), debug=True
        )
        try:
            return subprocess.call(args, shell=True)
        except OSError as e:
            raise EditorProcessError.from_context(self.editor_cmd, error=e)


def _wipe(path):
    try:
        size = os.path.getsize(path)
        with open(path, "r+b") as f:
            f.write(b"\0" * size)
            f.flush()
            os.fsync(f.fileno())
    except FileNotFoundError:
        pass


@contextlib.contextmanager
def scratch_file(
    content: str, suffix: str = "", dir: Optional[str] = None
) -> Iterator[str]:
    """Expose `content` in a private temporary file for the block.

    The file lives in its own 0700 directory, is overwritten with zeros
    and removed when the block exits, however it exits.

    """
    with tempfile.TemporaryDirectory(prefix="vlt-", dir=dir) as tmpdir:
        path = os.path.join(tmpdir, "edit" + suffix)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            yield path
        finally:
            _wipe(path)


class EditTransaction(object):
    """Decrypt a secret file, hand it to an editor and encrypt it again.

    The transaction moves through `State`. Whatever happens, the secret
    file holds a valid blob afterwards (the old one or the new one) and
    no plaintext is left on disk.

    """

    def __init__(
        self,
        encrypted_file: EncryptedFile,
        key: KeyPair,
        editor: Editor,
        scratch_dir: Optional[str] = None,
    ):
        self.file = encrypted_file
        self.key = key
        self.editor = editor
        self.scratch_dir = scratch_dir
        self.state = State.START
        self.original_cleartext: Optional[str] = None
        self.cleartext: Optional[str] = None

    def main(self):
        try:
            self.load()
            self.edit()
            self.commit()
        except BaseException:
            self.state = State.FAILED
            raise
        self.state = State.DONE

    def load(self):
        if not self.file.exists:
            output.annotate("Secret file does not exist. Creating a new one.")
            # A crash after this point still leaves a decryptable file.
            self.file.write(b"", self.key)
            self.cleartext = ""
            self.state = State.INITIALIZED
        else:
            self.cleartext = self.file.cleartext(self.key)
            self.state = State.LOADED
        self.original_cleartext = self.cleartext

    @property
    def suffix(self):
        filename, _encryption_ext = os.path.splitext(self.file.path.name)
        _, suffix = os.path.splitext(filename)
        return suffix

    def edit(self):
        self.state = State.EDITING
        with scratch_file(
            self.cleartext, self.suffix, self.scratch_dir
        ) as clearfile:
            exitcode = self.editor.run(clearfile)
            if exitcode != 0:
                raise EditorProcessError.from_context(
                    str(self.editor), exitcode
                )
            with open(
                clearfile, "r", encoding="utf-8", newline=""
            ) as new_clearfile:
                self.cleartext = new_clearfile.read()

    def commit(self):
        self.state = State.COMMITTING
        if self.cleartext == self.original_cleartext:
            output.annotate("No changes from original cleartext. Not updating.")
            return False
        self.file.write(self.cleartext.encode("utf-8"), self.key)
        return True


def main(secret_file, config, editor: Optional[str] = None, **kw):
    """Secrets editor console script.

    The main focus here is to avoid having unencrypted files accidentally
    ending up on disk.

    """
    encrypted_file = EncryptedFile(pathlib.Path(secret_file))
    with unlock_key(config) as key:
        transaction = EditTransaction(
            encrypted_file, key, Editor(editor or config.editor)
        )
        transaction.main()
    output.step("edit", f"Secret file `{secret_file}` is up to date.")
    return 0
