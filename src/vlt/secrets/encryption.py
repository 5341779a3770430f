import collections
import os
import pathlib
import tempfile
from typing import Union

import pgpy
from pgpy.constants import SymmetricKeyAlgorithm

from vlt import DecryptionError, EncryptionError, LockError, prepare_error
from vlt._output import output
from vlt.secrets.keys import KeyPair

MESSAGE_BEGIN = "-----BEGIN PGP MESSAGE-----\n"
CIPHER = SymmetricKeyAlgorithm.AES256
NEW_FILE_MODE = 0o644


def _require_unlocked(key: KeyPair):
    if key.locked:
        raise LockError.from_context(
            f"Key {key.identity} must be unlocked first."
        )


def _armor(message: pgpy.PGPMessage) -> str:
    # Armor headers are not covered by the integrity check. Never write any.
    message.ascii_headers = collections.OrderedDict()
    return str(message)


def encrypt(plaintext: bytes, key: KeyPair) -> str:
    """Encrypt `plaintext` for `key` and return an armored PGP message.

    The message carries a fresh AES-256 session key wrapped for the RSA
    key and is integrity protected (SEIPD with MDC).

    """
    _require_unlocked(key)
    try:
        message = pgpy.PGPMessage.new(bytes(plaintext))
        encrypted = key.public_key().encrypt(message, cipher=CIPHER)
        return _armor(encrypted)
    except Exception as e:
        raise EncryptionError.from_context(e) from e


def decrypt(blob: Union[str, bytes], key: KeyPair) -> bytes:
    """Decrypt an armored PGP message with `key`.

    Returns the complete plaintext or raises `DecryptionError`. Anything
    but the exact armor `encrypt()` produces is rejected, including
    changed armor headers or checksums that OpenPGP readers would
    otherwise tolerate.

    """
    _require_unlocked(key)
    if isinstance(blob, bytes):
        try:
            blob = blob.decode("ascii")
        except UnicodeDecodeError:
            raise DecryptionError.from_context(
                "not an armored secret"
            ) from None
    if not blob.startswith(MESSAGE_BEGIN):
        raise DecryptionError.from_context("not an armored PGP message")
    try:
        message = pgpy.PGPMessage.from_blob(blob)
        canonical = _armor(message)
    except Exception as e:
        raise DecryptionError.from_context(
            f"malformed secret: {prepare_error(e)}"
        ) from e
    if canonical != blob:
        raise DecryptionError.from_context(
            "malformed secret: armor or checksum does not match content"
        )
    if not message.is_encrypted:
        raise DecryptionError.from_context("secret is not encrypted")

    try:
        decrypted = key.private_key.decrypt(message)
        content = decrypted.message
    except Exception:
        raise DecryptionError.from_context(
            "secret is corrupted or was not encrypted for this key"
        ) from None
    if isinstance(content, str):
        content = content.encode("utf-8")
    return bytes(content)


class EncryptedFile(object):
    """A secret file on disk holding one armored PGP message."""

    def __init__(self, path: "pathlib.Path"):
        self.path = pathlib.Path(path)

    def __repr__(self):
        return f"<EncryptedFile {self.path}>"

    @property
    def exists(self):
        return self.path.exists()

    def read(self) -> bytes:
        return self.path.read_bytes()

    def decrypt(self, key: KeyPair) -> bytes:
        output.annotate(f"Decrypting `{self.path}`", debug=True)
        return decrypt(self.read(), key)

    def cleartext(self, key: KeyPair) -> str:
        return self.decrypt(key).decode("utf-8")

    def write(self, content: bytes, key: KeyPair):
        """Encrypt `content` and replace the file with the result.

        The new message is produced completely before the file is touched
        and then swapped in with a rename, so the file always holds
        either the previous or the new message. A symlinked secret file
        stays a symlink; its target is replaced.

        """
        blob = encrypt(content, key)
        target = self.path.resolve()
        if target.exists():
            mode = target.stat().st_mode & 0o777
        else:
            mode = NEW_FILE_MODE
        output.annotate(f"Writing `{target}`", debug=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=".tmp",
            dir=str(target.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
