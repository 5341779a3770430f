from .encryption import EncryptedFile, decrypt, encrypt
from .keys import KeyPair, load_and_unlock

__all__ = [
    "EncryptedFile",
    "KeyPair",
    "decrypt",
    "encrypt",
    "load_and_unlock",
]
