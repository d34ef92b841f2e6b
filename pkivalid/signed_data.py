"""Signed-data structures and signature verification against a public key."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

from pkivalid.der import TWO_BYTE_DER_SIZE, Reader, Tag, expect_tag, read_all
from pkivalid.der_values import bit_string_with_no_unused_bits
from pkivalid.errors import DerTypeId, ErrorKind, PkiError


@dataclass(frozen=True)
class AlgorithmIdentifier:
    """The contents of a PKIX AlgorithmIdentifier, without its outer SEQUENCE.

    That is the DER encoding of the algorithm OID followed by its parameters,
    if any. The bytes are not validated.
    """

    value: bytes

    def matches(self, encoded: bytes | bytearray | memoryview) -> bool:
        """Whether ``encoded`` is exactly this algorithm identifier."""
        return bytes(encoded) == self.value


_OID_EC_PUBLIC_KEY = bytes.fromhex("06072a8648ce3d0201")
_OID_RSASSA_PSS = bytes.fromhex("06092a864886f70d01010a")
_NULL = bytes.fromhex("0500")


def _pss_params(hash_oid_last: int, salt_length: int) -> bytes:
    hash_alg = bytes.fromhex("300d06096086480165030402") + bytes([hash_oid_last]) + _NULL
    mgf1 = bytes.fromhex("301a06092a864886f70d010108") + hash_alg
    return (
        bytes.fromhex("3034")
        + bytes.fromhex("a00f")
        + hash_alg
        + bytes.fromhex("a11c")
        + mgf1
        + bytes.fromhex("a2030201")
        + bytes([salt_length])
    )


ECDSA_P256 = AlgorithmIdentifier(_OID_EC_PUBLIC_KEY + bytes.fromhex("06082a8648ce3d030107"))
"""``id-ecPublicKey`` with named curve ``secp256r1``."""

ECDSA_P384 = AlgorithmIdentifier(_OID_EC_PUBLIC_KEY + bytes.fromhex("06052b81040022"))
"""``id-ecPublicKey`` with named curve ``secp384r1``."""

ECDSA_SHA256 = AlgorithmIdentifier(bytes.fromhex("06082a8648ce3d040302"))
"""``ecdsa-with-SHA256``."""

ECDSA_SHA384 = AlgorithmIdentifier(bytes.fromhex("06082a8648ce3d040303"))
"""``ecdsa-with-SHA384``."""

RSA_ENCRYPTION = AlgorithmIdentifier(bytes.fromhex("06092a864886f70d010101") + _NULL)
"""``rsaEncryption``."""

RSA_PKCS1_SHA256 = AlgorithmIdentifier(bytes.fromhex("06092a864886f70d01010b") + _NULL)
"""``sha256WithRSAEncryption``."""

RSA_PKCS1_SHA384 = AlgorithmIdentifier(bytes.fromhex("06092a864886f70d01010c") + _NULL)
"""``sha384WithRSAEncryption``."""

RSA_PKCS1_SHA512 = AlgorithmIdentifier(bytes.fromhex("06092a864886f70d01010d") + _NULL)
"""``sha512WithRSAEncryption``."""

RSA_PSS_SHA256 = AlgorithmIdentifier(_OID_RSASSA_PSS + _pss_params(0x01, 32))
"""``rsassaPss`` with SHA-256, MGF1 with SHA-256 and a 32-byte salt."""

RSA_PSS_SHA384 = AlgorithmIdentifier(_OID_RSASSA_PSS + _pss_params(0x02, 48))
"""``rsassaPss`` with SHA-384, MGF1 with SHA-384 and a 48-byte salt."""

RSA_PSS_SHA512 = AlgorithmIdentifier(_OID_RSASSA_PSS + _pss_params(0x03, 64))
"""``rsassaPss`` with SHA-512, MGF1 with SHA-512 and a 64-byte salt."""

ED25519 = AlgorithmIdentifier(bytes.fromhex("06032b6570"))
"""``id-Ed25519``."""


class InvalidSignature(Exception):
    """A signature is not valid; carries no further detail."""


class SignatureVerificationAlgorithm(ABC):
    """A pairing of a public key type and a signature algorithm.

    ``public_key_alg_id`` must match the algorithm of a SubjectPublicKeyInfo
    and ``signature_alg_id`` the signatureAlgorithm of the signed data for this
    algorithm to be used.
    """

    public_key_alg_id: AlgorithmIdentifier
    signature_alg_id: AlgorithmIdentifier

    @abstractmethod
    def verify_signature(self, public_key: bytes, message: bytes, signature: bytes) -> None:
        """Check ``signature`` over the unhashed ``message``.

        Raise ``InvalidSignature`` if it is not valid, including when the
        public key encoding is invalid.
        """


@dataclass(frozen=True)
class SignedData:
    """The "tbs || signatureAlgorithm || signature" pattern of signed items."""

    data: bytes
    """The signed data, as its complete DER encoding."""
    algorithm: bytes
    """The contents of the signatureAlgorithm AlgorithmIdentifier."""
    signature: bytes
    """The signature bits."""

    @classmethod
    def from_der(
        cls, reader: Reader, size_limit: int = TWO_BYTE_DER_SIZE
    ) -> tuple[bytes, SignedData]:
        """Parse tbs, algorithm and signature from inside the outer SEQUENCE.

        Returns the contents of the tbs SEQUENCE and the ``SignedData``.
        ``size_limit`` bounds the size of the tbs SEQUENCE.
        """
        data, tbs = reader.read_partial(
            lambda inner: expect_tag(inner, Tag.SEQUENCE, size_limit)
        )
        algorithm = expect_tag(reader, Tag.SEQUENCE)
        signature = bit_string_with_no_unused_bits(reader)
        return tbs, cls(data=data, algorithm=algorithm, signature=signature)


@dataclass(frozen=True)
class SubjectPublicKeyInfo:
    """The contents of a SubjectPublicKeyInfo SEQUENCE."""

    algorithm_id_value: bytes
    key_value: bytes

    @classmethod
    def from_der(cls, reader: Reader) -> SubjectPublicKeyInfo:
        """Parse the algorithm identifier and the public key bits."""
        algorithm_id_value = expect_tag(reader, Tag.SEQUENCE)
        key_value = bit_string_with_no_unused_bits(reader)
        return cls(algorithm_id_value=algorithm_id_value, key_value=key_value)


def verify_signed_data(
    supported_algorithms: Iterable[SignatureVerificationAlgorithm],
    spki_value: bytes,
    signed_data: SignedData,
) -> None:
    """Verify ``signed_data`` with the key in the SubjectPublicKeyInfo contents.

    Algorithms whose signature identifier matches are tried in order. One
    whose public key type does not fit is skipped; any other outcome is final.
    """
    found_signature_alg_match = False
    for algorithm in supported_algorithms:
        if not algorithm.signature_alg_id.matches(signed_data.algorithm):
            continue
        try:
            verify_signature(algorithm, spki_value, signed_data.data, signed_data.signature)
        except PkiError as error:
            if error.kind is ErrorKind.UNSUPPORTED_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY:
                found_signature_alg_match = True
                continue
            raise
        return

    if found_signature_alg_match:
        raise PkiError(ErrorKind.UNSUPPORTED_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY)
    raise PkiError(ErrorKind.UNSUPPORTED_SIGNATURE_ALGORITHM)


def verify_signature(
    signature_alg: SignatureVerificationAlgorithm,
    spki_value: bytes,
    message: bytes,
    signature: bytes,
) -> None:
    """Verify ``signature`` over ``message`` with one algorithm and one key."""
    spki = read_all(
        spki_value,
        PkiError.trailing_data(DerTypeId.SUBJECT_PUBLIC_KEY_INFO),
        SubjectPublicKeyInfo.from_der,
    )
    if not signature_alg.public_key_alg_id.matches(spki.algorithm_id_value):
        raise PkiError(ErrorKind.UNSUPPORTED_SIGNATURE_ALGORITHM_FOR_PUBLIC_KEY)
    try:
        signature_alg.verify_signature(bytes(spki.key_value), bytes(message), bytes(signature))
    except InvalidSignature:
        raise PkiError(ErrorKind.INVALID_SIGNATURE_FOR_PUBLIC_KEY) from None