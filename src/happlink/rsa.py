"""Provides the RSA capability behind the link codec: PKCS#1 v1.5 and raw (unpadded) encryption and decryption.

Key parsing and padded encryption are delegated to `cryptography`. Decryption, and the raw encryption `cryptography`
does not expose, go through python-rsa with keys rebuilt from the numbers `cryptography` loads. Keys may be given as
PEM text, loaded on every call, or as key objects already loaded by the caller.

Typical usage example:

    c = public_encrypt(pub_pem, b"Hi there!")
    r = private_decrypt(priv_pem, c)
    block = private_decrypt(priv_pem, c, Padding.NONE)
    r = unpad_pkcs1(block)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import enum

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric import rsa
import rsa as pyrsa
from rsa import core as pyrsa_core

from happlink.errors import InvalidPaddingStructure

# What the capability raises for unusable keys, oversized messages and undecryptable ciphertexts.
CAPABILITY_ERRORS = (ValueError, TypeError, UnsupportedAlgorithm)

ENCRYPTION_BLOCK_TYPE = b"\x00\x02"

PrivateKeyInput = str | rsa.RSAPrivateKey
PublicKeyInput = str | rsa.RSAPrivateKey | rsa.RSAPublicKey


class Padding(enum.Enum):
    """Padding modes understood by the capability."""
    PKCS1 = "pkcs1"
    NONE = "none"


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """Loads an unencrypted PEM private key (PKCS#1 or PKCS#8).

    Args:
        pem: The PEM text.

    Returns:
        The loaded RSA private key.

    Raises:
        ValueError: If the PEM data cannot be parsed.
        TypeError: If the key is password protected or not an RSA key.
    """
    key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeError("Key is not an RSA private key.")
    return key


def load_public_key(pem: str) -> rsa.RSAPublicKey:
    """Loads a PEM public key (PKCS#1 or SubjectPublicKeyInfo).

    A private key is accepted as well, in which case its public half is returned.

    Args:
        pem: The PEM text.

    Returns:
        The loaded RSA public key.

    Raises:
        ValueError: If the PEM data cannot be parsed.
        TypeError: If the key is not an RSA key.
    """
    if "PRIVATE KEY-----" in pem:
        return load_private_key(pem).public_key()
    key = serialization.load_pem_public_key(pem.encode("utf-8"))
    if not isinstance(key, rsa.RSAPublicKey):
        raise TypeError("Key is not an RSA public key.")
    return key


def key_bytes(key: rsa.RSAPrivateKey | rsa.RSAPublicKey) -> int:
    """Size of the key's modulus in bytes."""
    return (key.key_size + 7) // 8


def check_representative(message: int, mod: int) -> int:
    if not 0 <= message < mod:
        raise ValueError("Message representative must be in range [0, mod-1]")
    return message


def blinded_key(key: rsa.RSAPrivateKey) -> pyrsa.PrivateKey:
    """Rebuilds a loaded private key for python-rsa, whose private-key operations are blinded."""
    privs = key.private_numbers()
    pubs = privs.public_numbers
    return pyrsa.PrivateKey(pubs.n, pubs.e, privs.d, privs.p, privs.q)


def private_decrypt(key: PrivateKeyInput, ciphertext: bytes, mode: Padding = Padding.PKCS1) -> bytes:
    """Decrypts a ciphertext with a private key.

    Both modes go through python-rsa. Its PKCS#1 v1.5 decryption raises on a bad padding, where OpenSSL's implicit
    rejection would return a made-up message and let a wrong key pass for the right one. With `Padding.NONE` the
    full modulus-sized block is returned, padding included.

    Args:
        key: The PEM private key, or a loaded one.
        ciphertext: The raw ciphertext bytes.
        mode: Padding to remove.

    Returns:
        The decrypted bytes.

    Raises:
        ValueError: If the key cannot be loaded or the ciphertext does not decrypt.
        TypeError: If the key is password protected or not an RSA key.
    """
    if isinstance(key, str):
        key = load_private_key(key)
    bsize = key_bytes(key)
    if len(ciphertext) != bsize:
        raise ValueError("Ciphertext does not match expected length.")
    raw = blinded_key(key)
    if mode is Padding.PKCS1:
        try:
            return pyrsa.decrypt(ciphertext, raw)
        except pyrsa.DecryptionError as err:
            raise ValueError(str(err)) from err
    message = check_representative(bytes_to_integer(ciphertext), raw.n)
    return integer_to_bytes(raw.blinded_decrypt(message), bsize)


def public_encrypt(key: PublicKeyInput, plaintext: bytes, mode: Padding = Padding.PKCS1) -> bytes:
    """Encrypts a plaintext with a public key.

    With `Padding.NONE` the plaintext must already be a full modulus-sized block.

    Args:
        key: The PEM public key, a private key whose public half should be used, or a loaded key.
        plaintext: The bytes to encrypt.
        mode: Padding to apply.

    Returns:
        The ciphertext, as long as the modulus.

    Raises:
        ValueError: If the key cannot be loaded or the plaintext does not fit.
        TypeError: If the key is not an RSA key.
    """
    if isinstance(key, str):
        key = load_public_key(key)
    elif isinstance(key, rsa.RSAPrivateKey):
        key = key.public_key()
    if mode is Padding.PKCS1:
        return key.encrypt(plaintext, padding.PKCS1v15())
    bsize = key_bytes(key)
    if len(plaintext) != bsize:
        raise ValueError("Message does not match expected length.")
    pubs = key.public_numbers()
    message = check_representative(bytes_to_integer(plaintext), pubs.n)
    return integer_to_bytes(pyrsa_core.encrypt_int(message, pubs.e, pubs.n), bsize)


def unpad_pkcs1(block: bytes) -> bytes:
    """Strips PKCS#1 v1.5 encryption padding from a raw decrypted block.

    The block must start with 0x00 0x02; the payload follows the first zero byte after those two.

    Args:
        block: The raw block, as returned by `private_decrypt` with `Padding.NONE`.

    Returns:
        The payload.

    Raises:
        InvalidPaddingStructure: If the block type is wrong or there is no separator.
    """
    if block[0:2] != ENCRYPTION_BLOCK_TYPE:
        raise InvalidPaddingStructure("Manual decrypt: Invalid padding structure")
    try:
        sep = block.index(b"\x00", 2)
    except ValueError:
        raise InvalidPaddingStructure("Manual decrypt: Invalid padding structure") from None
    return block[sep + 1:]


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to an integer, big-endian.

    Args:
        msg: The bytes (AKA Octet String) to convert.

    Returns:
        The representative integer.
    """
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int) -> bytes:
    """Converts an integer to a fixed-length byte string, big-endian.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string.

    Returns:
        The representative bytes. (AKA Octet String)
    """
    return msg.to_bytes(fixedlen, byteorder="big", signed=False)
