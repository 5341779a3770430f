"""Query passphrases from the user."""

import getpass
import os


class PassphrasePrompt(object):
    """Ask the user for the passphrase protecting a key.

    The passphrase is read from `VLT_PASSPHRASE` if it is set, otherwise
    it is queried on the terminal. Avoid repeated passphrase queries by
    caching entered passphrases.
    """

    passphrase_cache = {}

    def __init__(self, for_what, double_entry=False):
        """Setup passphrase prompt. `for_what` describes the object that
        is protected via this passphrase (presented to the user during
        passphrase entry). If `double_entry` is True, the passphrase must be
        entered twice.
        """
        self.for_what = for_what
        self.double_entry = double_entry

    def __call__(self):
        return self.get()

    def get(self):
        op = os.environ.get("VLT_PASSPHRASE")
        if op is not None:
            return op
        if self.for_what in self.passphrase_cache:
            return self.passphrase_cache[self.for_what]
        if self.double_entry:
            phrase = self.ask_passphrase_twice()
        else:
            phrase = self.ask_passphrase_once()
        self.passphrase_cache[self.for_what] = phrase
        return phrase

    def ask_passphrase_once(self):
        return getpass.getpass("Enter passphrase for %s: " % self.for_what)

    def ask_passphrase_twice(self):
        phrase1 = getpass.getpass("Enter passphrase for %s: " % self.for_what)
        phrase2 = getpass.getpass(
            "Enter passphrase for %s again: " % self.for_what
        )
        if phrase1 != phrase2:
            raise RuntimeError("passphrases do not match")
        return phrase1
