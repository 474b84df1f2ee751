"""Tests for backup payload encryption."""

import base64

import pytest

from budget_ledger.exceptions import BackupFormatError, DecryptionError, ValidationError
from budget_ledger.infrastructure.backup.encryption import (
    CIPHER_NAME,
    SealedPayload,
    open_sealed,
    seal,
    xor_deobfuscate,
    xor_obfuscate,
)

# Keep the key derivation cheap in tests
ITERATIONS = 1_000


class TestSeal:
    """Tests for AES-GCM sealing."""

    def test_round_trip(self) -> None:
        """A sealed text opens with the same password."""
        payload = seal("café ☕ ledger", "s3cret", iterations=ITERATIONS)
        assert open_sealed(payload, "s3cret") == "café ☕ ledger"

    def test_wrong_password(self) -> None:
        """A wrong password raises DecryptionError."""
        payload = seal("ledger", "s3cret", iterations=ITERATIONS)
        with pytest.raises(DecryptionError):
            open_sealed(payload, "S3cret")

    def test_tampered_ciphertext(self) -> None:
        """Any change to the ciphertext is detected."""
        payload = seal("ledger", "s3cret", iterations=ITERATIONS)
        tampered = payload._replace(
            ciphertext=bytes([payload.ciphertext[0] ^ 1]) + payload.ciphertext[1:]
        )
        with pytest.raises(DecryptionError):
            open_sealed(tampered, "s3cret")

    def test_associated_data_is_bound(self) -> None:
        """The payload only opens with the same associated data."""
        payload = seal("ledger", "s3cret", b"v1", iterations=ITERATIONS)
        assert open_sealed(payload, "s3cret", b"v1") == "ledger"
        with pytest.raises(DecryptionError):
            open_sealed(payload, "s3cret", b"v2")

    def test_random_salt_and_nonce(self) -> None:
        """Sealing twice never produces the same output."""
        first = seal("ledger", "s3cret", iterations=ITERATIONS)
        second = seal("ledger", "s3cret", iterations=ITERATIONS)
        assert first.salt != second.salt
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_empty_password_rejected(self) -> None:
        """A password is required."""
        with pytest.raises(ValidationError):
            seal("ledger", "")


class TestSealedPayloadFields:
    """Tests for the JSON fields of a sealed payload."""

    def test_fields_round_trip(self) -> None:
        """Fields written by to_fields are read by from_fields."""
        payload = seal("ledger", "s3cret", iterations=ITERATIONS)
        fields = payload.to_fields()

        assert fields["cipher"] == CIPHER_NAME
        assert fields["kdf"]["iterations"] == ITERATIONS
        assert SealedPayload.from_fields(fields) == payload

    @pytest.mark.parametrize(
        "change",
        [
            {"cipher": "rot13"},
            {"kdf": None},
            {"kdf": {"name": "scrypt", "salt": "", "iterations": 1}},
            {"nonce": "***"},
        ],
    )
    def test_invalid_fields(self, change: dict[str, object]) -> None:
        """Unknown or malformed parameters raise BackupFormatError."""
        fields = seal("ledger", "s3cret", iterations=ITERATIONS).to_fields()
        fields.update(change)
        with pytest.raises(BackupFormatError):
            SealedPayload.from_fields(fields)


class TestLegacyXor:
    """Tests for the legacy XOR format."""

    def test_round_trip(self) -> None:
        """Obfuscated text is restored with the same password."""
        text = '{"categories": [], "note": "naïve"}'
        assert xor_deobfuscate(xor_obfuscate(text, "pw"), "pw") == text

    def test_known_output(self) -> None:
        """The format is a repeating-key XOR encoded in base64."""
        expected = base64.b64encode(bytes([ord("a") ^ ord("k"), ord("b") ^ ord("k")]))
        assert xor_obfuscate("ab", "k") == expected.decode("ascii")

    @pytest.mark.parametrize("password", ["pw", "mot-de-passé"])
    def test_reads_browser_output(self, password: str) -> None:
        """Text written char by char with one byte per XORed unit is restored."""
        text = '{"name": "Café", "price": "£3"}'
        obfuscated = "".join(
            chr(ord(char) ^ ord(password[i % len(password)]))
            for i, char in enumerate(text)
        )
        data = base64.b64encode(obfuscated.encode("latin-1")).decode("ascii")

        assert xor_deobfuscate(data, password) == text
        assert xor_obfuscate(text, password) == data

    def test_wide_characters_not_writable(self) -> None:
        """Units that do not fit in one byte cannot be written."""
        with pytest.raises(ValueError):
            xor_obfuscate("10 €", "pw")

    def test_invalid_base64(self) -> None:
        """Data that is not base64 raises DecryptionError."""
        with pytest.raises(DecryptionError):
            xor_deobfuscate("not base64!", "pw")

    def test_empty_password_rejected(self) -> None:
        """A password is required."""
        with pytest.raises(ValidationError):
            xor_deobfuscate("YWI=", "")
