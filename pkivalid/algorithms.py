"""Signature verification algorithms backed by the ``cryptography`` library."""

from __future__ import annotations

from dataclasses import dataclass, field

from cryptography.exceptions import InvalidSignature as _CryptoInvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from pkivalid import signed_data as alg_id
from pkivalid.der import Reader, Tag, nested, read_all
from pkivalid.der_values import nonnegative_integer
from pkivalid.errors import ErrorKind, PkiError
from pkivalid.signed_data import (
    AlgorithmIdentifier,
    InvalidSignature,
    SignatureVerificationAlgorithm,
)

_UNCOMPRESSED_POINT = 0x04
_RSA_MIN_PUBLIC_EXPONENT = 3
_RSA_MAX_PUBLIC_EXPONENT = (1 << 33) - 1


def _parse_rsa_public_key(data: bytes) -> tuple[int, int]:
    """Parse an RSAPublicKey SEQUENCE into its modulus and public exponent."""
    bad = PkiError(ErrorKind.BAD_DER)

    def decode(sequence: Reader) -> tuple[bytes, bytes]:
        modulus = nonnegative_integer(sequence)
        exponent = nonnegative_integer(sequence)
        return modulus, exponent

    modulus, exponent = read_all(
        data, bad, lambda reader: nested(reader, Tag.SEQUENCE, bad, decode)
    )
    return int.from_bytes(modulus, "big"), int.from_bytes(exponent, "big")


@dataclass(frozen=True)
class _EcdsaVerifier:
    curve: ec.EllipticCurve
    hash_algorithm: hashes.HashAlgorithm

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> None:
        if not public_key or public_key[0] != _UNCOMPRESSED_POINT:
            raise ValueError("only uncompressed EC points are accepted")
        key = ec.EllipticCurvePublicKey.from_encoded_point(self.curve, public_key)
        key.verify(signature, message, ec.ECDSA(self.hash_algorithm))


@dataclass(frozen=True)
class _RsaVerifier:
    hash_algorithm: hashes.HashAlgorithm
    min_bits: int
    max_bits: int
    pss: bool = False

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> None:
        modulus, exponent = _parse_rsa_public_key(public_key)
        # The lower bound is checked against the length rounded up to whole bytes.
        rounded_bits = ((modulus.bit_length() + 7) // 8) * 8
        if rounded_bits < self.min_bits or modulus.bit_length() > self.max_bits:
            raise ValueError("RSA modulus size out of range")
        if (
            exponent < _RSA_MIN_PUBLIC_EXPONENT
            or exponent > _RSA_MAX_PUBLIC_EXPONENT
            or exponent % 2 == 0
        ):
            raise ValueError("unacceptable RSA public exponent")
        key = rsa.RSAPublicNumbers(exponent, modulus).public_key()
        if self.pss:
            scheme: padding.AsymmetricPadding = padding.PSS(
                mgf=padding.MGF1(self.hash_algorithm),
                salt_length=self.hash_algorithm.digest_size,
            )
        else:
            scheme = padding.PKCS1v15()
        key.verify(signature, message, scheme, self.hash_algorithm)


@dataclass(frozen=True)
class _Ed25519Verifier:
    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> None:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)


@dataclass(frozen=True)
class CryptographyAlgorithm(SignatureVerificationAlgorithm):
    """A signature verification algorithm implemented with ``cryptography``."""

    name: str
    public_key_alg_id: AlgorithmIdentifier
    signature_alg_id: AlgorithmIdentifier
    verifier: _EcdsaVerifier | _RsaVerifier | _Ed25519Verifier = field(
        repr=False, compare=False
    )

    def verify_signature(self, public_key: bytes, message: bytes, signature: bytes) -> None:
        """Check ``signature`` over ``message``; raise ``InvalidSignature`` if it fails."""
        try:
            self.verifier.verify(bytes(public_key), bytes(message), bytes(signature))
        except (_CryptoInvalidSignature, ValueError, TypeError, UnsupportedAlgorithm, PkiError):
            raise InvalidSignature() from None


ECDSA_P256_SHA256 = CryptographyAlgorithm(
    "ECDSA_P256_SHA256",
    alg_id.ECDSA_P256,
    alg_id.ECDSA_SHA256,
    _EcdsaVerifier(ec.SECP256R1(), hashes.SHA256()),
)
"""ECDSA signatures using the P-256 curve and SHA-256."""

ECDSA_P256_SHA384 = CryptographyAlgorithm(
    "ECDSA_P256_SHA384",
    alg_id.ECDSA_P256,
    alg_id.ECDSA_SHA384,
    _EcdsaVerifier(ec.SECP256R1(), hashes.SHA384()),
)
"""ECDSA signatures using the P-256 curve and SHA-384. Deprecated."""

ECDSA_P384_SHA256 = CryptographyAlgorithm(
    "ECDSA_P384_SHA256",
    alg_id.ECDSA_P384,
    alg_id.ECDSA_SHA256,
    _EcdsaVerifier(ec.SECP384R1(), hashes.SHA256()),
)
"""ECDSA signatures using the P-384 curve and SHA-256. Deprecated."""

ECDSA_P384_SHA384 = CryptographyAlgorithm(
    "ECDSA_P384_SHA384",
    alg_id.ECDSA_P384,
    alg_id.ECDSA_SHA384,
    _EcdsaVerifier(ec.SECP384R1(), hashes.SHA384()),
)
"""ECDSA signatures using the P-384 curve and SHA-384."""

RSA_PKCS1_2048_8192_SHA256 = CryptographyAlgorithm(
    "RSA_PKCS1_2048_8192_SHA256",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PKCS1_SHA256,
    _RsaVerifier(hashes.SHA256(), 2048, 8192),
)
"""RSA PKCS#1 1.5 signatures using SHA-256 for keys of 2048-8192 bits."""

RSA_PKCS1_2048_8192_SHA384 = CryptographyAlgorithm(
    "RSA_PKCS1_2048_8192_SHA384",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PKCS1_SHA384,
    _RsaVerifier(hashes.SHA384(), 2048, 8192),
)
"""RSA PKCS#1 1.5 signatures using SHA-384 for keys of 2048-8192 bits."""

RSA_PKCS1_2048_8192_SHA512 = CryptographyAlgorithm(
    "RSA_PKCS1_2048_8192_SHA512",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PKCS1_SHA512,
    _RsaVerifier(hashes.SHA512(), 2048, 8192),
)
"""RSA PKCS#1 1.5 signatures using SHA-512 for keys of 2048-8192 bits."""

RSA_PKCS1_3072_8192_SHA384 = CryptographyAlgorithm(
    "RSA_PKCS1_3072_8192_SHA384",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PKCS1_SHA384,
    _RsaVerifier(hashes.SHA384(), 3072, 8192),
)
"""RSA PKCS#1 1.5 signatures using SHA-384 for keys of 3072-8192 bits."""

RSA_PSS_2048_8192_SHA256_LEGACY_KEY = CryptographyAlgorithm(
    "RSA_PSS_2048_8192_SHA256_LEGACY_KEY",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PSS_SHA256,
    _RsaVerifier(hashes.SHA256(), 2048, 8192, pss=True),
)
"""RSA PSS signatures using SHA-256 for 2048-8192 bit rsaEncryption keys."""

RSA_PSS_2048_8192_SHA384_LEGACY_KEY = CryptographyAlgorithm(
    "RSA_PSS_2048_8192_SHA384_LEGACY_KEY",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PSS_SHA384,
    _RsaVerifier(hashes.SHA384(), 2048, 8192, pss=True),
)
"""RSA PSS signatures using SHA-384 for 2048-8192 bit rsaEncryption keys."""

RSA_PSS_2048_8192_SHA512_LEGACY_KEY = CryptographyAlgorithm(
    "RSA_PSS_2048_8192_SHA512_LEGACY_KEY",
    alg_id.RSA_ENCRYPTION,
    alg_id.RSA_PSS_SHA512,
    _RsaVerifier(hashes.SHA512(), 2048, 8192, pss=True),
)
"""RSA PSS signatures using SHA-512 for 2048-8192 bit rsaEncryption keys."""

ED25519 = CryptographyAlgorithm(
    "ED25519",
    alg_id.ED25519,
    alg_id.ED25519,
    _Ed25519Verifier(),
)
"""Ed25519 signatures as in RFC 8410."""