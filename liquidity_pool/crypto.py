"""
Address helpers for pools and liquidity providers.
"""
import hashlib
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

ADDRESS_LENGTH = 20


def generate_hash(data: bytes) -> bytes:
    """Generates a Keccak-256 hash."""
    from Crypto.Hash import keccak
    return keccak.new(digest_bits=256, data=data).digest()


def generate_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generates an ECDSA private/public key pair (SECP256R1)."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_key = private_key.public_key()
    return private_key, public_key


def serialize_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """Serializes a public key object into PEM format (string)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')


def public_key_to_address(public_key_pem: str) -> bytes:
    """Derives a provider address from a public key PEM string."""
    public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
    der_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    address_hash = hashlib.sha256(der_bytes).digest()
    return address_hash[:ADDRESS_LENGTH]


def new_address() -> bytes:
    """Fresh provider address backed by a throwaway key pair."""
    _, public_key = generate_key_pair()
    return public_key_to_address(serialize_public_key(public_key))


def name_to_address(name: str) -> bytes:
    """Stable address for a named account (simulation scenarios)."""
    return generate_hash(b"ACCOUNT:" + name.encode('utf-8'))[-ADDRESS_LENGTH:]


def pool_address(asset_a: str, asset_b: str) -> bytes:
    """Deterministic pool address; independent of asset order."""
    first, second = sorted((asset_a, asset_b))
    data = b"POOL:" + first.encode('utf-8') + b"\x00" + second.encode('utf-8')
    return generate_hash(data)[-ADDRESS_LENGTH:]
