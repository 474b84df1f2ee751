"""Password protection of backup payloads.

Two schemes are supported:

* ``aes-256-gcm`` (default): a 256-bit key is derived from the password with
  PBKDF2-HMAC-SHA256 and a random salt, and the payload is sealed with
  AES-GCM. The authentication tag detects both a wrong password and any
  tampering with the ciphertext or the bound header.
* legacy repeating-key XOR + base64: produced by older versions of the
  application. It has no integrity check and trivially weak
  confidentiality; it is only read, never written by the application.
"""

import base64
import binascii
import hashlib
import os
from itertools import cycle
from typing import Any, NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from budget_ledger.exceptions import BackupFormatError, DecryptionError, ValidationError

CIPHER_NAME = "aes-256-gcm"
KDF_NAME = "pbkdf2-sha256"
KDF_ITERATIONS = 200_000
SALT_SIZE = 16
NONCE_SIZE = 12
KEY_SIZE = 32


class SealedPayload(NamedTuple):
    """An AES-GCM encrypted payload and the parameters to open it."""

    ciphertext: bytes
    salt: bytes
    nonce: bytes
    iterations: int

    def to_fields(self) -> dict[str, Any]:
        """Return the JSON fields describing this payload."""
        return {
            "cipher": CIPHER_NAME,
            "kdf": {
                "name": KDF_NAME,
                "salt": _b64encode(self.salt),
                "iterations": self.iterations,
            },
            "nonce": _b64encode(self.nonce),
            "data": _b64encode(self.ciphertext),
        }

    @classmethod
    def from_fields(cls, document: dict[str, Any]) -> "SealedPayload":
        """Read a sealed payload from backup document fields.

        Raises:
            BackupFormatError: If the cipher parameters are missing or unknown.
        """
        if document.get("cipher") != CIPHER_NAME:
            raise BackupFormatError(f"Unsupported cipher: {document.get('cipher')!r}")
        kdf = document.get("kdf")
        if not isinstance(kdf, dict) or kdf.get("name") != KDF_NAME:
            raise BackupFormatError("Unsupported key derivation parameters")
        iterations = kdf.get("iterations")
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
            raise BackupFormatError(f"Invalid key derivation iterations: {iterations!r}")
        try:
            return cls(
                ciphertext=_b64decode(document.get("data")),
                salt=_b64decode(kdf.get("salt")),
                nonce=_b64decode(document.get("nonce")),
                iterations=iterations,
            )
        except DecryptionError as e:
            raise BackupFormatError(f"Malformed encrypted backup: {e}") from e


def derive_key(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    """Derive an AES key from a password."""
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, iterations, dklen=KEY_SIZE
    )


def seal(
    plaintext: str,
    password: str,
    associated_data: bytes = b"",
    iterations: int = KDF_ITERATIONS,
) -> SealedPayload:
    """Encrypt and authenticate a text with a password.

    Raises:
        ValidationError: If the password is empty.
    """
    _check_password(password)
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    key = derive_key(password, salt, iterations)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), associated_data)
    return SealedPayload(ciphertext, salt, nonce, iterations)


def open_sealed(
    payload: SealedPayload, password: str, associated_data: bytes = b""
) -> str:
    """Decrypt a sealed payload.

    Raises:
        DecryptionError: If the password is wrong or the payload was altered.
    """
    _check_password(password)
    key = derive_key(password, payload.salt, payload.iterations)
    try:
        plaintext = AESGCM(key).decrypt(
            payload.nonce, payload.ciphertext, associated_data
        )
    except (InvalidTag, ValueError) as e:
        raise DecryptionError("Wrong password or corrupted backup") from e
    return plaintext.decode("utf-8")


def xor_obfuscate(plaintext: str, password: str) -> str:
    """Apply the legacy repeating-key XOR and base64-encode the result.

    Text and password are combined as UTF-16 code units and every XORed unit
    is written as one byte, as older versions of the application did.

    Raises:
        ValueError: If a XORed unit does not fit in one byte.
    """
    _check_password(password)
    units = _xor(_code_units(plaintext), _code_units(password))
    if any(unit > 0xFF for unit in units):
        raise ValueError("Text cannot be written in the legacy format")
    return _b64encode(bytes(units))


def xor_deobfuscate(ciphertext: str, password: str) -> str:
    """Reverse :func:`xor_obfuscate`.

    A wrong password yields garbage rather than an error; callers must
    validate the result.

    Raises:
        DecryptionError: If the ciphertext is not base64.
    """
    _check_password(password)
    units = _xor(list(_b64decode(ciphertext)), _code_units(password))
    return _from_code_units(units)


def _code_units(text: str) -> list[int]:
    encoded = text.encode("utf-16-le", "surrogatepass")
    return [
        int.from_bytes(encoded[i : i + 2], "little")
        for i in range(0, len(encoded), 2)
    ]


def _from_code_units(units: list[int]) -> str:
    encoded = b"".join(unit.to_bytes(2, "little") for unit in units)
    return encoded.decode("utf-16-le", "surrogatepass")


def _xor(data: list[int], key: list[int]) -> list[int]:
    return [unit ^ key_unit for unit, key_unit in zip(data, cycle(key))]


def _check_password(password: str) -> None:
    if not password:
        raise ValidationError("A password is required", field="password")


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: Any) -> bytes:
    if not isinstance(value, str):
        raise DecryptionError("Encrypted data must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(f"Encrypted data is not valid base64: {e}") from e
