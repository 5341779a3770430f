import argparse
import sys
import textwrap
from typing import Optional

import importlib_resources

import vlt
import vlt.secrets.edit
import vlt.secrets.manage
from vlt._output import TerminalBackend, output
from vlt.config import Config


def main(args: Optional[list] = None) -> None:
    version = (
        importlib_resources.files("vlt")
        .joinpath("version.txt")
        .read_text()
        .strip()
    )
    parser = argparse.ArgumentParser(
        description=(
            "vlt v{}: keep small secret files encrypted with a local key"
        ).format(version),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.set_defaults(func=parser.print_usage)

    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode."
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Configuration file. (default: vlt.cfg if it exists)",
    )
    parser.add_argument(
        "-k",
        "--key",
        dest="key_file",
        default=None,
        help="Key file to use. (default: private.key or $VLT_KEY_FILE)",
    )

    subparsers = parser.add_subparsers()

    p = subparsers.add_parser("init", help="Generate a new key pair.")
    p.add_argument("--name", default=None, help="Name of the key owner.")
    p.add_argument("--email", default=None, help="Email of the key owner.")
    p.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing key file. Secrets encrypted for the old "
        "key can not be decrypted any longer.",
    )
    p.set_defaults(func=vlt.secrets.manage.init)

    p = subparsers.add_parser(
        "edit",
        help=textwrap.dedent(
            """
            Encrypted secrets file editor utility. Decrypts file,
            invokes the editor, and encrypts the file again. If called with a
            non-existent file name, a new encrypted file is created.
        """
        ),
    )
    p.add_argument(
        "--editor",
        "-e",
        metavar="EDITOR",
        default=None,
        help="Invoke EDITOR to edit (default: $EDITOR or vi)",
    )
    p.add_argument("secret_file", help="Secret file to edit.")
    p.set_defaults(func=vlt.secrets.edit.main)

    p = subparsers.add_parser(
        "decode", help="Decrypt a secret file and print its content."
    )
    p.add_argument("secret_file", help="Secret file to decode.")
    p.set_defaults(func=vlt.secrets.manage.decode)

    p = subparsers.add_parser(
        "env",
        help="Start a shell with the KEY=VALUE assignments of a secret file "
        "as environment variables.",
    )
    p.add_argument(
        "--shell",
        default=None,
        help="Shell to start (default: $SHELL or /bin/sh)",
    )
    p.add_argument("secret_file", help="Secret file with KEY=VALUE lines.")
    p.set_defaults(func=vlt.secrets.manage.env)

    args = parser.parse_args(args)

    # Consume global arguments
    output.enable_debug = args.debug

    # Pass over to function
    if args.func.__name__ == "print_usage":
        args.func()
        sys.exit(1)

    output.backend = TerminalBackend()

    func_args = dict(args._get_kwargs())
    del func_args["func"]
    del func_args["debug"]
    config_file = func_args.pop("config")
    key_file = func_args.pop("key_file")
    try:
        if config_file:
            config = Config(config_file, key_file=key_file)
        else:
            config = Config.from_directory(key_file=key_file)
        return args.func(config=config, **func_args)
    except vlt.ReportingException as e:
        e.report()
    except Exception as e:
        # only print traceback if we're in debug mode
        output.error(
            vlt.prepare_error(e),
            exc_info=sys.exc_info() if args.debug else None,
        )
    sys.exit(1)
