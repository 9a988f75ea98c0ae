"""Encoding and decoding of `happ://` links.

A link carries an RSA ciphertext together with the version of the key that produced it:

    happ://<version>/<base64 ciphertext>

Several key versions can be registered at once so that keys can be rotated without breaking links already handed
out. The version inside a link is advisory: decryption tries the claimed version first and then every other known
version, and reports which key actually worked.

Typical usage example:

    codec = LinkCodec({"crypt": "keys/crypt.pem"}, {"crypt": "keys/crypt.pub"})
    link = codec.encrypt("Hi there!", "crypt").link
    r = codec.decrypt(link).plaintext
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
from collections.abc import Iterable
from collections.abc import Mapping
import logging
import os
import re
import typing

from happlink import config
from happlink import rsa
from happlink.errors import DecryptionFailed
from happlink.errors import EncryptionError
from happlink.errors import InvalidArgument
from happlink.errors import InvalidLinkFormat
from happlink.errors import KeyNotFound
from happlink.keystore import KeyInput
from happlink.keystore import KeyReader
from happlink.keystore import KeyStore
from happlink.keystore import read_key_file

SCHEME = "happ"
# Versions a link may name. Only used to validate links; which keys exist is up to the caller.
LINK_VERSIONS = ("crypt", "crypt2", "crypt3", "crypt4")
FALLBACK_ORDER = LINK_VERSIONS
LINK_RE = re.compile(rf"{SCHEME}://({'|'.join(map(re.escape, LINK_VERSIONS))})/(.+)")

_B64_ALPHABET = re.compile(r"[^A-Za-z0-9+/]")
_URLSAFE = str.maketrans("-_", "+/")

logger = logging.getLogger(__name__)


class DecryptResult(typing.NamedTuple):
    link_version: str
    used_key_version: str
    plaintext: str


class EncryptResult(typing.NamedTuple):
    version: str
    ciphertext_b64: str
    link: str


class Attempt(typing.NamedTuple):
    """Outcome of a single decryption method: either a plaintext or the reason it failed."""
    plaintext: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_link(link: str) -> tuple[str, str]:
    """Splits a link into its version and base64 payload.

    Args:
        link: The link to parse.

    Returns:
        The version named by the link and its (still encoded) payload.

    Raises:
        InvalidLinkFormat: If the link is empty or malformed.
    """
    if not link:
        raise InvalidLinkFormat("empty link")
    match = LINK_RE.fullmatch(link)
    if match is None:
        raise InvalidLinkFormat("invalid link format")
    return match.group(1), match.group(2)


def build_link(version: str, payload: str) -> str:
    return f"{SCHEME}://{version}/{payload}"


def decode_payload(text: str) -> bytes:
    """Decodes a base64 payload without ever failing.

    Both the standard and the URL-safe alphabets are accepted. Anything after the first `=` and any character outside
    the alphabet is dropped, and missing padding is restored. Garbage in gives garbage ciphertext out.

    Args:
        text: The base64 text.

    Returns:
        The decoded bytes.
    """
    cleaned = _B64_ALPHABET.sub("", text.split("=", 1)[0].translate(_URLSAFE))
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    return base64.b64decode(cleaned + "=" * (-len(cleaned) % 4))


def candidate_order(version: str, fallback: Iterable[str] = FALLBACK_ORDER) -> tuple[str, ...]:
    """The claimed version followed by the fallback versions, without repeats."""
    return tuple(dict.fromkeys((version, *fallback)))


def read_plaintext(data: bytes) -> str:
    """Decodes a decrypted payload.

    Encryption refuses empty data, so an empty payload can only come from a key that does not fit the ciphertext.

    Raises:
        ValueError: If the payload is empty or is not UTF-8.
    """
    if not data:
        raise ValueError("Decrypted payload is empty.")
    return data.decode("utf-8")


def standard_attempt(key: rsa.PrivateKeyInput, ciphertext: bytes) -> Attempt:
    """Decrypts with the capability's own PKCS#1 v1.5 unpadding."""
    try:
        data = rsa.private_decrypt(key, ciphertext, rsa.Padding.PKCS1)
        return Attempt(plaintext=read_plaintext(data))
    except rsa.CAPABILITY_ERRORS as err:
        return Attempt(error=str(err))


def manual_attempt(key: rsa.PrivateKeyInput, ciphertext: bytes) -> Attempt:
    """Decrypts without padding removal and strips the PKCS#1 v1.5 padding by hand.

    This tolerates blocks that the capability's stricter padding checks reject but that still hold a well-formed
    payload once the separator is found.
    """
    try:
        block = rsa.private_decrypt(key, ciphertext, rsa.Padding.NONE)
        return Attempt(plaintext=read_plaintext(rsa.unpad_pkcs1(block)))
    except rsa.CAPABILITY_ERRORS as err:
        return Attempt(error=str(err))


class LinkCodec:
    """Encrypts payloads into links and decrypts them back, across several key versions.

    Attributes:
        private_keys: Private keys by version, used for decryption.
        public_keys: Public keys by version, used for encryption.
        fallback_order: Versions tried, in order, after the one a link claims.
    """

    def __init__(self,
                 private_keys: Mapping[str, KeyInput] | None = None,
                 public_keys: Mapping[str, KeyInput] | None = None,
                 fallback_order: Iterable[str] = FALLBACK_ORDER,
                 reader: KeyReader = read_key_file) -> None:
        """Resolves all configured keys.

        Args:
            private_keys: Mapping of version to private key input (PEM text, path or falsy).
            public_keys: Mapping of version to public key input (PEM text, path or falsy).
            fallback_order: Versions to try after the one a link claims.
            reader: The filesystem collaborator used for path inputs.

        Raises:
            KeyResolutionError: If any key input cannot be resolved.
        """
        self.private_keys = KeyStore(private_keys, reader)
        self.public_keys = KeyStore(public_keys, reader)
        self.fallback_order: tuple[str, ...] = tuple(fallback_order)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **kwargs) -> "LinkCodec":
        """Builds a codec from `HAPP_PRIVATE_KEY_<VERSION>` and `HAPP_PUBLIC_KEY_<VERSION>` variables.

        Args:
            environ: The environment to read. Defaults to `os.environ`.
            **kwargs: Passed on to the constructor.

        Returns:
            The configured codec.
        """
        private_keys, public_keys = config.keys_from_env(os.environ if environ is None else environ)
        return cls(private_keys, public_keys, **kwargs)

    def encrypt(self, data: str, version: str) -> EncryptResult:
        """Encrypts data into a link with the public key of the given version.

        Args:
            data: The text to encrypt.
            version: The key version to encrypt with.

        Returns:
            The version, the base64 ciphertext and the complete link.

        Raises:
            InvalidArgument: If data or version is empty.
            KeyNotFound: If no public key is registered for the version.
            EncryptionError: If the RSA operation fails.
        """
        if not data:
            raise InvalidArgument("data is empty")
        if not version:
            raise InvalidArgument("version cannot be empty")
        if version not in self.public_keys:
            raise KeyNotFound(f"public key for version {version} not found")
        try:
            key = self.public_keys.load(version, rsa.load_public_key)
            ciphertext = rsa.public_encrypt(key, data.encode("utf-8"), rsa.Padding.PKCS1)
        except rsa.CAPABILITY_ERRORS as err:
            raise EncryptionError(f"Encryption failed: {err}") from err
        encoded = base64.b64encode(ciphertext).decode("ascii")
        return EncryptResult(version, encoded, build_link(version, encoded))

    def decrypt(self, link: str) -> DecryptResult:
        """Decrypts a link, falling back across every registered private key.

        The version claimed by the link is tried first, then the fallback versions. Each key gets a standard PKCS#1
        v1.5 decryption and, should that fail, a manual one. The standard method's error is never reported; only the
        manual method's error ends up in the diagnostics.

        Args:
            link: The link to decrypt.

        Returns:
            The claimed version, the version of the key that worked and the plaintext.

        Raises:
            InvalidLinkFormat: If the link is empty or malformed.
            DecryptionFailed: If no registered key decrypts the link. Carries one diagnostic per key tried.
        """
        version, payload = parse_link(link)
        ciphertext = decode_payload(payload)
        details = []
        for candidate in candidate_order(version, self.fallback_order):
            if candidate not in self.private_keys:
                continue
            attempt = self._attempt(candidate, ciphertext)
            if attempt.ok:
                if candidate != version:
                    logger.info("Link claiming version %s decrypted with key %s", version, candidate)
                return DecryptResult(version, candidate, attempt.plaintext)
            logger.debug("Key %s failed to decrypt link: %s", candidate, attempt.error)
            details.append(f"[Key: {candidate}] Failed both methods. Last error: {attempt.error}")
        raise DecryptionFailed(details)

    def _attempt(self, version: str, ciphertext: bytes) -> Attempt:
        try:
            key = self.private_keys.load(version, rsa.load_private_key)
        except rsa.CAPABILITY_ERRORS as err:
            return Attempt(error=str(err))
        attempt = standard_attempt(key, ciphertext)
        if not attempt.ok:
            attempt = manual_attempt(key, ciphertext)
        return attempt
