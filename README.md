# pkivalid

Strict DER parsing and signature verification for X.509 signed data.

`pkivalid` reads the DER encoding used by certificates and revocation lists.
It accepts only canonical encodings and lengths of at most four bytes, and it
checks signatures against a caller-supplied list of algorithms.

## Installation

```
pip install pkivalid
```

## Reading DER

```python
from pkivalid.der import Reader, Tag, expect_tag, read_all
from pkivalid.der_values import read_u8, read_optional_bool
from pkivalid.errors import ErrorKind, PkiError

value = read_all(bytes([0x02, 0x01, 0x05]), PkiError(ErrorKind.BAD_DER), read_u8)
assert value == 5

reader = Reader(bytes([0x01, 0x01, 0xFF]))
assert read_optional_bool(reader) is True
```

Any malformed input raises `PkiError`. Its `kind` is a member of `ErrorKind`.
`rank()` orders errors by how specific they are, and `most_specific()` keeps
the more useful of two errors.

## Verifying signed data

`SignedData.from_der` splits a `tbs || signatureAlgorithm || signature`
structure. `verify_signed_data` then picks the first supported algorithm
whose identifiers match the signature and the public key:

```python
from pkivalid.signed_data import verify_signed_data

verify_signed_data(supported_algorithms, spki_value, signed_data)
```

The module `pkivalid.algorithms` provides ready-made
`CryptographyAlgorithm` instances for ECDSA (P-256, P-384), Ed25519, RSA
PKCS#1 v1.5 and RSA-PSS. They are built on the `cryptography` library.
Verification failures raise `PkiError`, for example with kind
`INVALID_SIGNATURE_FOR_PUBLIC_KEY` or `UNSUPPORTED_SIGNATURE_ALGORITHM`.

## Running the tests

```
pip install -e ".[test]"
pytest
```