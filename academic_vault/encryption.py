import json
import logging
import secrets
from typing import Optional

from academic_vault.errors import (
    InsufficientAdvisors, InsufficientShares, KeySharingError, RecordDecryptionError, RecordEncryptionError
)
from academic_vault.models import (
    AcademicRecord, AdvisorShare, CryptoParams, DecryptionResult, EncryptionResult, KeyReconstructionRequest,
    SecretShare, ShamirSharingResult, TranscriptDecryptionResult, TranscriptEncryptionResult
)
from academic_vault.utils.aes import (AES, encrypt_academic_record as aes_encrypt_record,
                                      decrypt_academic_record as aes_decrypt_record, generate_key)
from academic_vault.utils.bbs import (generate_secure_hex)
from academic_vault.utils.keygen import (generate_key_id)
from academic_vault.utils.rc4 import (decrypt_binary, encrypt_binary)
from academic_vault.utils.shamir import (reconstruct_aes_key, share_aes_key)

logger = logging.getLogger(__name__)

AES_KEY_HEX_LENGTH = 64

# -----------------------------
# Record Encryption
# -----------------------------
def generate_secure_aes_key(key_size: int = CryptoParams.aes_key_size,
                            source: str = CryptoParams.key_source) -> str:
    """
    Generates a fresh AES record key.

    Args:
        key_size (int): 128, 192 or 256 bits
        source (str): "bbs" (Blum-Blum-Shub) or "system" (OS CSPRNG)

    Returns:
        str: Key as lowercase hex

    Cryptographic principles:
    - One key per record: compromise of a key exposes a single record
    - BBS output is unpredictable unless the modulus can be factored
    """
    return generate_key(key_size, source)


def encrypt_academic_record(record: AcademicRecord, aes_key: Optional[str] = None) -> EncryptionResult:
    """
    Encrypts a record's canonical JSON under AES-256-ECB with PKCS#7 padding.

    A key is generated when none is supplied; the key actually used is
    returned so the caller can wrap and share it.

    Raises:
        RecordEncryptionError: If the key is malformed
    """
    key = aes_key or generate_secure_aes_key()
    try:
        encrypted_data = aes_encrypt_record(record, key)
    except ValueError as e:
        raise RecordEncryptionError(f"Failed to encrypt academic record: {e}") from e
    return EncryptionResult(encrypted_data=encrypted_data, key_used=key)


def decrypt_academic_record(encrypted_data: str, aes_key: str) -> AcademicRecord:
    """
    Raises:
        RecordDecryptionError: On a wrong key, corrupted ciphertext or bad padding
    """
    try:
        return aes_decrypt_record(encrypted_data, aes_key)
    except ValueError as e:
        raise RecordDecryptionError(f"Failed to decrypt academic record: {e}") from e

# -----------------------------
# Advisor Key Sharing
# -----------------------------
def share_key_among_advisors(aes_key: str, advisor_ids: list[str],
                             threshold: int = CryptoParams.shamir_threshold) -> ShamirSharingResult:
    """
    Splits a record key into one Shamir share per advisor.

    Args:
        aes_key (str): Hex AES key
        advisor_ids (list[str]): Advisor pool, one share each
        threshold (int): Shares needed to rebuild the key

    Returns:
        ShamirSharingResult: Key id, advisor shares and the field prime

    Raises:
        InsufficientAdvisors: If the pool is smaller than the threshold
        KeySharingError: If the key cannot be shared

    Cryptographic principles:
    - Threshold access: any ``threshold`` advisors together, no smaller group
    - Information-theoretic secrecy below the threshold
    """
    if len(advisor_ids) < threshold:
        raise InsufficientAdvisors(f"Need at least {threshold} advisors for secret sharing")
    try:
        shared = share_aes_key(aes_key, threshold, len(advisor_ids))
    except ValueError as e:
        raise KeySharingError(f"Failed to share key among advisors: {e}") from e

    key_id = generate_key_id()
    shares = [
        AdvisorShare(advisor_id=advisor_id, share_x=share.x, share_y=share.y)
        for advisor_id, share in zip(advisor_ids, shared["shares"])
    ]
    logger.info("Shared key %s among %d advisors (threshold %d)", key_id, len(shares), threshold)
    return ShamirSharingResult(key_id=key_id, shares=shares, prime=shared["prime"])


def reconstruct_key_from_shares(request: KeyReconstructionRequest,
                                threshold: int = CryptoParams.shamir_threshold,
                                key_length: int = AES_KEY_HEX_LENGTH) -> str:
    """
    Rebuilds a record key from advisor shares, using the first ``threshold`` of them.

    Raises:
        InsufficientShares: If fewer than ``threshold`` shares are supplied
        KeySharingError: If the shares are malformed or from another field
    """
    if len(request.advisor_shares) < threshold:
        raise InsufficientShares(f"Need at least {threshold} shares to reconstruct key")
    shares = [SecretShare(x=s.share_x, y=s.share_y) for s in request.advisor_shares[:threshold]]
    try:
        key = reconstruct_aes_key(shares, request.prime, key_length)
    except ValueError as e:
        raise KeySharingError(f"Failed to reconstruct key from shares: {e}") from e
    logger.info("Key %s reconstructed at the request of %s", request.key_id, request.requested_by)
    return key


def encrypt_and_share(record: AcademicRecord, advisor_ids: list[str],
                      threshold: int = CryptoParams.shamir_threshold) -> tuple[str, ShamirSharingResult]:
    """Encrypts a record under a fresh key and shares that key among the advisors."""
    aes_key = generate_secure_aes_key()
    encrypted = encrypt_academic_record(record, aes_key)
    return encrypted.encrypted_data, share_key_among_advisors(aes_key, advisor_ids, threshold)


def reconstruct_and_decrypt(encrypted_data: str, request: KeyReconstructionRequest) -> AcademicRecord:
    return decrypt_academic_record(encrypted_data, reconstruct_key_from_shares(request))


def validate_decryption_request(request: KeyReconstructionRequest,
                                threshold: int = CryptoParams.shamir_threshold) -> tuple[bool, str]:
    """
    Checks a group decryption request before any interpolation happens.

    Returns:
        tuple[bool, str]: (is_valid, message)
    """
    shares = request.advisor_shares or []
    if len(shares) < threshold:
        return False, f"Need at least {threshold} advisor shares for decryption"
    if len({s.advisor_id for s in shares}) != len(shares):
        return False, "Duplicate shares from the same advisor not allowed"
    for share in shares:
        if not share.advisor_id or not isinstance(share.share_x, int) or not share.share_y:
            return False, "Invalid share format"
    return True, "Decryption request is valid"

# -----------------------------
# Generic Data
# -----------------------------
def encrypt_data(data, key: Optional[str] = None) -> EncryptionResult:
    """Encrypts a string as-is, anything else as JSON."""
    aes_key = key or generate_secure_aes_key()
    payload = data if isinstance(data, str) else json.dumps(data)
    return EncryptionResult(encrypted_data=AES(aes_key, len(aes_key) * 4).encrypt_to_hex(payload),
                            key_used=aes_key)


def decrypt_data(encrypted_data: str, key: str) -> DecryptionResult:
    """Decrypts hex ciphertext; never raises, failures are reported in the result."""
    try:
        decrypted = AES(key, len(key) * 4).decrypt_from_hex(encrypted_data)
    except ValueError as e:
        return DecryptionResult(success=False, message=f"Decryption failed: {e}")
    try:
        parsed = json.loads(decrypted)
    except json.JSONDecodeError:
        parsed = decrypted
    return DecryptionResult(success=True, message="Decryption successful", decrypted_data=parsed)


def generate_secure_random(num_bytes: int) -> str:
    return generate_secure_hex(num_bytes)

# -----------------------------
# Transcript Files
# -----------------------------
def encrypt_transcript(data: bytes, file_name: str, key: Optional[str] = None) -> TranscriptEncryptionResult:
    """
    Encrypts a rendered transcript file with RC4.

    The output file name gains an ``_encrypted`` marker before its extension.
    """
    rc4_key = key or secrets.token_hex(16)
    encrypted = encrypt_binary(data, rc4_key)
    stem, dot, ext = file_name.rpartition(".")
    out_name = f"{stem}_encrypted.{ext}" if dot else f"{file_name}_encrypted"
    return TranscriptEncryptionResult(
        encrypted_data=encrypted,
        encryption_key=rc4_key,
        file_name=out_name,
        original_size=len(data),
        encrypted_size=len(encrypted),
    )


def decrypt_transcript(data: bytes, key: str, file_name: str) -> TranscriptDecryptionResult:
    out_name = file_name.replace("_encrypted", "")
    try:
        decrypted = decrypt_binary(data, key)
    except ValueError as e:
        return TranscriptDecryptionResult(success=False, message=f"Failed to decrypt transcript: {e}",
                                          file_name=out_name)
    return TranscriptDecryptionResult(success=True, message="Transcript decrypted successfully",
                                      file_name=out_name, decrypted_data=decrypted)
