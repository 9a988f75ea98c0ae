"""Exceptions raised by happlink.

Every error derives from HappLinkError as well as from the builtin exception closest to its meaning, so callers that
already catch ValueError, OSError and friends keep working.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from collections.abc import Iterable


class HappLinkError(Exception):
    """Base class of all happlink errors."""


class KeyResolutionError(HappLinkError, OSError):
    """A configured key input is neither PEM text nor a readable file."""


class InvalidArgument(HappLinkError, ValueError):
    """A required argument was empty."""


class InvalidLinkFormat(InvalidArgument):
    """The link does not follow the `happ://<version>/<payload>` format."""


class KeyNotFound(HappLinkError, LookupError):
    """No key is registered for the requested version."""


class EncryptionError(HappLinkError, RuntimeError):
    """The RSA capability failed while encrypting."""


class InvalidPaddingStructure(HappLinkError, ValueError):
    """A raw RSA block does not hold a PKCS#1 v1.5 encryption block."""


class DecryptionFailed(HappLinkError, RuntimeError):
    """No registered private key could decrypt the link.

    Attributes:
        details: One diagnostic line per attempted key, in the order the keys were tried.
    """

    def __init__(self, details: Iterable[str] = ()) -> None:
        self.details: tuple[str, ...] = tuple(details)
        super().__init__("\n".join(self.details))
