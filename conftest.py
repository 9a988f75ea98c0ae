"""Configures pytest further."""
import functools
import typing

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
import pytest


class KeyPair(typing.NamedTuple):
    key: rsa.RSAPrivateKey
    private_pem: str
    public_pem: str

    @property
    def pkcs1_private_pem(self) -> str:
        return self.key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.TraditionalOpenSSL,
                                      serialization.NoEncryption()).decode("ascii")

    @property
    def pkcs1_public_pem(self) -> str:
        return self.key.public_key().public_bytes(serialization.Encoding.PEM,
                                                  serialization.PublicFormat.PKCS1).decode("ascii")


@functools.cache
def generate_keypair(name: str, size: int = 2048) -> KeyPair:
    """Generates a key pair once per name for the whole session."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=size)
    private_pem = key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8,
                                    serialization.NoEncryption()).decode("ascii")
    public_pem = key.public_key().public_bytes(serialization.Encoding.PEM,
                                               serialization.PublicFormat.SubjectPublicKeyInfo).decode("ascii")
    return KeyPair(key, private_pem, public_pem)


@pytest.fixture(scope="session")
def keypairs() -> dict[str, KeyPair]:
    """Key pairs by version. `crypt3` uses a smaller modulus than the others."""
    return {
        "crypt": generate_keypair("crypt"),
        "crypt2": generate_keypair("crypt2"),
        "crypt3": generate_keypair("crypt3", 1024),
    }


@pytest.fixture(scope="session")
def make_keypair() -> typing.Callable[..., KeyPair]:
    return generate_keypair


def pytest_addoption(parser):
    parser.addoption("--skip-slow", action="store_true", default=False, help="skip slower tests")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--skip-slow"):
        return
    skip = pytest.mark.skip(reason="Slow test: needs no --skip-slow option")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)
