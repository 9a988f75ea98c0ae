"""Resolution of configured key inputs into PEM key material, keyed by version.

A key input is either PEM text, recognised by its `-----BEGIN` marker, or the path of a file holding it. Inputs are
resolved once, when the store is built, so a bad path fails early rather than on first use.

Typical usage example:

    private = KeyStore({"crypt": "/etc/happ/crypt.pem", "crypt2": pem_text, "crypt3": None})
    pem = private.get("crypt2")
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
import logging
import os
import pathlib
import typing

from happlink.errors import KeyResolutionError

PEM_MARKER = "-----BEGIN"

KeyInput = str | os.PathLike | None
KeyReader = Callable[[KeyInput], str]
Loaded = typing.TypeVar("Loaded")

logger = logging.getLogger(__name__)


def read_key_file(file: str | os.PathLike) -> str:
    """Reads a key file as UTF-8 text."""
    return pathlib.Path(file).read_text(encoding="utf-8")


def resolve_key(key: KeyInput, reader: KeyReader = read_key_file) -> str | None:
    """Resolves a single key input into PEM text.

    Args:
        key: PEM text, a path to a PEM file, or a falsy value.
        reader: The filesystem collaborator used for paths.

    Returns:
        The PEM text, or None if the input was falsy.

    Raises:
        KeyResolutionError: If the input is not PEM text and cannot be read as a file.
    """
    if not key:
        return None
    if isinstance(key, str):
        trimmed = key.strip()
        if trimmed.startswith(PEM_MARKER):
            return trimmed
    try:
        return reader(key)
    except (OSError, UnicodeDecodeError, ValueError, TypeError) as err:
        raise KeyResolutionError(f"Failed to load key from path or invalid PEM: {key}") from err


class KeyStore(Mapping[str, str]):
    """Immutable mapping of key version to PEM key material.

    Versions configured with a falsy input are left out entirely, so `version in store` is true only for usable keys.
    Parsed key objects are kept by `load` for as long as the store itself lives.
    """

    def __init__(self, keys: Mapping[str, KeyInput] | None = None, reader: KeyReader = read_key_file) -> None:
        """Resolves every configured key.

        Args:
            keys: Mapping of version to key input (PEM text, path or falsy).
            reader: The filesystem collaborator used for path inputs.

        Raises:
            KeyResolutionError: If any input cannot be resolved. No partial store is produced.
        """
        resolved: dict[str, str] = {}
        for version, key in (keys or {}).items():
            pem = resolve_key(key, reader)
            if pem is None:
                logger.debug("Skipping key version %s: no key configured", version)
                continue
            inline = isinstance(key, str) and key.strip().startswith(PEM_MARKER)
            logger.debug("Resolved key version %s from %s", version, "inline PEM" if inline else "file")
            resolved[version] = pem
        self._keys = resolved
        self._loaded: dict[str, typing.Any] = {}

    def __getitem__(self, version: str) -> str:
        return self._keys[version]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def load(self, version: str, loader: Callable[[str], Loaded]) -> Loaded:
        """Parses the key of a version once and reuses the result on later calls.

        Args:
            version: The key version.
            loader: Turns PEM text into a key object. A store is expected to be used with a single loader.

        Returns:
            The parsed key.

        Raises:
            KeyError: If the version has no key.

        Any error the loader raises propagates, and a failed load is retried on the next call.
        """
        try:
            return self._loaded[version]
        except KeyError:
            pass
        return self._loaded.setdefault(version, loader(self._keys[version]))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(versions={list(self._keys)!r})"
