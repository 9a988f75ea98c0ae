"""The Command Line Interface for happlink, including Interactive elements.

A hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface) that asks for whatever the command line
left out, unless running non-interactively. Keys come from the environment (see `happlink.config`) and from
`--private-key`/`--public-key` options, the latter taking precedence.

Typical usage example:

    happlink encrypt -p crypt=keys/crypt.pub -k crypt --message "Hi there!"
    happlink decrypt -P crypt=keys/crypt.pem -P crypt2=keys/crypt2.pem --message happ://crypt/...
    OR
    python -m happlink
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import logging
import sys
import typing

import happlink
from happlink import config
from happlink.codec import LINK_VERSIONS
from happlink.errors import HappLinkError


class HelpData(typing.NamedTuple):
    description: str
    choices: list[str] | None = None


help_dict: dict[str, HelpData] = {
    "subcommand":
        HelpData(
            description="The available subcommands in happlink.",
            choices=["encrypt", "decrypt"],
        ),
    "encrypt":
        HelpData("Encrypt a message into a link."),
    "decrypt":
        HelpData("Decrypt a link back into its message."),
    "public_key":
        HelpData(description="Public key for a version, as VERSION=PEM_OR_PATH. Repeatable."),
    "private_key":
        HelpData(description="Private key for a version, as VERSION=PEM_OR_PATH. Repeatable."),
    "message":
        HelpData(description="Message, link or path to file containing it. If Path start with `P:`"),
    "key_version":
        HelpData(description=f"Key version to encrypt with. Defaults to {LINK_VERSIONS[0]}."),
}

pubkey = argparse.ArgumentParser(add_help=False)
pubkey.add_argument("--public-key",
                    "-p",
                    dest="public_key",
                    action="append",
                    type=config.parse_key_option,
                    help=help_dict["public_key"].description)
privkey = argparse.ArgumentParser(add_help=False)
privkey.add_argument("--private-key",
                     "-P",
                     dest="private_key",
                     action="append",
                     type=config.parse_key_option,
                     help=help_dict["private_key"].description)
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--message", "-m", help=help_dict["message"].description)
corep = argparse.ArgumentParser(prog="happlink")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {happlink.__version__}")
corep.add_argument("--non-interactive", "-n", action="store_true", help="Enable non-interactive mode")
corep.add_argument("--verbose", action="store_true", help="Log key resolution and decryption attempts")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

encrypt = commands.add_parser("encrypt", parents=[pubkey, payloads], help=help_dict["encrypt"].description)
encrypt.add_argument("--key-version",
                     "-k",
                     dest="key_version",
                     default=LINK_VERSIONS[0],
                     help=help_dict["key_version"].description)
decrypt = commands.add_parser("decrypt", parents=[privkey, payloads], help=help_dict["decrypt"].description)


def ask(arg: str, non_interactive: bool) -> str:
    """Prompts for an argument the command line left out, offering its choices if it has any."""
    if non_interactive:
        raise IOError(f"Argument {arg} is missing and non-interactive mode is active.")
    choices = help_dict[arg].choices
    print(f"Please specify the {arg}!")
    print("Description: " + help_dict[arg].description)
    for choice in choices or ():
        print(f"{choice} - {help_dict[choice].description}")
    while True:
        answer = input(f"{arg}: ")
        if answer and (choices is None or answer in choices):
            return answer
        print("Please select an option from the list." if choices else "Please provide a value.")


def check_message(mess: str, enc: str = "utf-8") -> str:
    """Parse message for path-notice."""
    if mess.startswith("P:"):
        mess = mess[2:]
        with open(mess, "r", encoding=enc) as f:
            mess = f.read().strip()
    return mess


def main(argv: list[str] | None = None) -> None:
    """Core Hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface)"""
    args = corep.parse_args(argv)
    quiet = args.non_interactive
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    def pspr(text: str):
        """Print only if not in non-interactive mode."""
        if not quiet:
            print(text)

    pspr("Welcome to happlink!\n")
    if not args.subcommand:
        args.subcommand = ask("subcommand", quiet)
    if getattr(args, "message", None) is None:
        args.message = ask("message", quiet)
    else:
        pspr(f"message: {args.message}")
    pspr("\nInput Complete! Executing...")
    env_private, env_public = config.keys_from_env()
    try:
        match args.subcommand:
            case "encrypt":
                codec = happlink.LinkCodec(public_keys=config.merge_keys(env_public, getattr(args, "public_key", None)))
                result = codec.encrypt(check_message(args.message), getattr(args, "key_version", LINK_VERSIONS[0]))
                pspr("Link:")
                print(result.link)
            case "decrypt":
                codec = happlink.LinkCodec(config.merge_keys(env_private, getattr(args, "private_key", None)))
                result = codec.decrypt(check_message(args.message, "ascii"))
                pspr(f"Decrypted with key {result.used_key_version} (link claims {result.link_version}).")
                pspr("Cleartext:")
                print(result.plaintext)
    except HappLinkError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)
    pspr("Thank you for using happlink!")
    pspr("Goodbye!")


if __name__ == "__main__":
    main()
