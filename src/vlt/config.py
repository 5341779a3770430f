"""Settings for the key location, the key identity and external programs."""

import os
import os.path
from configparser import RawConfigParser

DEFAULT_CONFIG_FILE = "vlt.cfg"
SECTION = "vlt"


class Config(object):
    """vlt configuration.

    Values are taken, in increasing precedence, from the class defaults,
    the `[vlt]` section of the config file, the environment and finally
    explicit overrides (usually command line flags).

    """

    key_file = "private.key"
    name = "User"
    email = "user@example.com"
    editor = "vi"
    shell = "/bin/sh"

    OPTIONS = ("key_file", "name", "email", "editor", "shell")

    def __init__(self, path=None, environ=None, **overrides):
        if environ is None:
            environ = os.environ
        self.path = path
        parser = RawConfigParser()
        parser.optionxform = lambda optionstr: optionstr
        if path:
            with open(path) as f:
                parser.read_file(f)
        self.config = parser
        self._load_file()
        self._load_environ(environ)
        for option, value in overrides.items():
            if option not in self.OPTIONS:
                raise TypeError(f"Unknown option `{option}`")
            if value is not None:
                setattr(self, option, value)

    @classmethod
    def from_directory(cls, base_dir=".", **kw):
        """Use `vlt.cfg` in `base_dir` if it exists."""
        path = os.path.join(base_dir, DEFAULT_CONFIG_FILE)
        if not os.path.exists(path):
            path = None
        return cls(path, **kw)

    def _load_file(self):
        if not self.config.has_section(SECTION):
            return
        section = self.config[SECTION]
        unknown = set(section) - set(self.OPTIONS)
        if unknown:
            raise ValueError(
                "Unknown option(s) in {}: {}".format(
                    self.path, ", ".join(sorted(unknown))
                )
            )
        for option in self.OPTIONS:
            if option in section:
                setattr(self, option, section[option].strip())
        if "key_file" in section:
            # Relative to the config file, not the working directory.
            base = os.path.dirname(os.path.abspath(self.path))
            self.key_file = os.path.join(
                base, os.path.expanduser(self.key_file)
            )

    def _load_environ(self, environ):
        if environ.get("VLT_KEY_FILE"):
            self.key_file = environ["VLT_KEY_FILE"]
        if environ.get("EDITOR"):
            self.editor = environ["EDITOR"]
        if environ.get("SHELL"):
            self.shell = environ["SHELL"]
