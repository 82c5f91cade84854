"""
pytest configuration for client tests.

Adds src directory to Python path for imports and provides shared key
material for signing tests.
"""

import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


def _pkcs8_pem(key) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def ec_private_key():
    """P-256 private key object."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_private_key_pem(ec_private_key) -> str:
    """P-256 private key as PKCS#8 PEM text."""
    return _pkcs8_pem(ec_private_key)


@pytest.fixture(scope="session")
def ec_public_key(ec_private_key):
    return ec_private_key.public_key()


@pytest.fixture(scope="session")
def p384_private_key_pem() -> str:
    """EC key on the wrong curve for ES256."""
    return _pkcs8_pem(ec.generate_private_key(ec.SECP384R1()))


@pytest.fixture(scope="session")
def rsa_private_key_pem() -> str:
    return _pkcs8_pem(rsa.generate_private_key(public_exponent=65537, key_size=2048))
