"""Versioned RSA links: encoding payloads into `happ://` links and decoding them back.

Provides a codec that encrypts text with the public key of a chosen key version and decrypts links with whichever
registered private key works, so keys can be rotated without breaking links already handed out. Keys are given as
PEM text or file paths, per version.

Typical usage example:

    codec = LinkCodec({"crypt": "keys/crypt.pem"}, {"crypt": "keys/crypt.pub"})
    link = codec.encrypt("Hi there!", "crypt").link
    r = codec.decrypt(link)
    print(r.plaintext, r.used_key_version)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from happlink.codec import DecryptResult
from happlink.codec import EncryptResult
from happlink.codec import FALLBACK_ORDER
from happlink.codec import LINK_VERSIONS
from happlink.codec import LinkCodec
from happlink.errors import DecryptionFailed
from happlink.errors import EncryptionError
from happlink.errors import HappLinkError
from happlink.errors import InvalidArgument
from happlink.errors import InvalidLinkFormat
from happlink.errors import InvalidPaddingStructure
from happlink.errors import KeyNotFound
from happlink.errors import KeyResolutionError
from happlink.keystore import KeyStore

__version__ = "0.0.1"
__all__ = [
    "LinkCodec",
    "KeyStore",
    "DecryptResult",
    "EncryptResult",
    "LINK_VERSIONS",
    "FALLBACK_ORDER",
    "HappLinkError",
    "KeyResolutionError",
    "InvalidArgument",
    "InvalidLinkFormat",
    "KeyNotFound",
    "EncryptionError",
    "InvalidPaddingStructure",
    "DecryptionFailed",
]
