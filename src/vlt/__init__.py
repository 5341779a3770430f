import os.path

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


def prepare_error(error):
    return f"{error.__class__.__name__}: {error}"


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        raise NotImplementedError()


class KeyGenerationError(ReportingException):
    """The key pair could not be generated."""

    error: str

    @classmethod
    def from_context(cls, error):
        self = cls()
        self.error = prepare_error(error)
        return self

    def __str__(self):
        return f"Could not generate key: {self.error}"

    def report(self):
        output.error("Could not generate key")
        output.tabular("message", self.error, red=True)


class KeyParseError(ReportingException):
    """The armored key material could not be parsed."""

    reason: str

    @classmethod
    def from_context(cls, reason):
        self = cls()
        self.reason = reason
        return self

    def __str__(self):
        return f"Invalid key: {self.reason}"

    def report(self):
        output.error("Invalid key")
        output.tabular("reason", self.reason, red=True)


class WrongPassphraseError(ReportingException):
    """The passphrase does not unlock the key.

    Never carries the passphrase itself.

    """

    identity: str
    fingerprint: str

    @classmethod
    def from_context(cls, identity, fingerprint):
        self = cls()
        self.identity = identity
        self.fingerprint = fingerprint
        return self

    def __str__(self):
        return f"Wrong passphrase for key {self.identity} ({self.fingerprint})"

    def report(self):
        output.error("Wrong passphrase")
        output.tabular("key", self.identity, red=True)
        output.tabular("fingerprint", self.fingerprint)


class LockError(ReportingException):
    """The key is in the wrong lock state for the requested operation."""

    reason: str

    @classmethod
    def from_context(cls, reason):
        self = cls()
        self.reason = reason
        return self

    def __str__(self):
        return self.reason

    def report(self):
        output.error(self.reason)


class EncryptionError(ReportingException):
    """The content could not be encrypted."""

    error: str

    @classmethod
    def from_context(cls, error):
        self = cls()
        self.error = error if isinstance(error, str) else prepare_error(error)
        return self

    def __str__(self):
        return f"Could not encrypt: {self.error}"

    def report(self):
        output.error("Could not encrypt")
        output.tabular("message", self.error, red=True)


class DecryptionError(ReportingException):
    """A secret blob could not be decrypted with the given key."""

    reason: str

    @classmethod
    def from_context(cls, reason):
        self = cls()
        self.reason = reason
        return self

    def __str__(self):
        return f"Could not decrypt: {self.reason}"

    def report(self):
        output.error("Could not decrypt")
        output.tabular("reason", self.reason, red=True)


class EditorProcessError(ReportingException):
    """The editor failed to start or exited with an error."""

    command: str
    exitcode: str
    error: str

    @classmethod
    def from_context(cls, command, exitcode=None, error=None):
        self = cls()
        self.command = command
        self.exitcode = str(exitcode) if exitcode is not None else ""
        self.error = prepare_error(error) if error is not None else ""
        return self

    def __str__(self):
        if self.error:
            return f"Could not run editor `{self.command}`: {self.error}"
        return f"Exitcode {self.exitcode} while calling: {self.command}"

    def report(self):
        output.error("Error while calling the editor")
        output.tabular("command", self.command, red=True)
        if self.exitcode:
            output.tabular("exit code", self.exitcode)
        if self.error:
            output.tabular("message", self.error)


class KeyFileExistsError(ReportingException):
    """Refusing to replace an existing key file."""

    filename: str

    @classmethod
    def from_context(cls, filename):
        self = cls()
        self.filename = str(filename)
        return self

    def __str__(self):
        return f"Key file already exists: {self.filename}"

    def report(self):
        output.error(str(self))
        output.annotate(
            "Secrets encrypted for the existing key can not be decrypted "
            "with a new one. Use --force to replace it anyway."
        )
