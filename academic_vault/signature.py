import logging
from datetime import datetime, timezone
from typing import Union

from academic_vault.errors import (SigningError)
from academic_vault.models import (
    AcademicRecord, CryptoParams, DigitalSignature, HeadKeyPair, SignatureVerification, VerificationStatus
)
from academic_vault.utils.keygen import (generate_head_key_pair as _generate_head_key_pair,
                                         private_key_from_json, public_key_from_json)
from academic_vault.utils.rsa import (sign_bytes, verify_bytes)
from academic_vault.utils.sha3 import (compare_hashes, hash_academic_record, sha3_256, to_hex)

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHM = "RSA-SHA3"
KEY_VALIDATION_MESSAGE = "key_validation_test"


def _now() -> datetime:
    return datetime.now(timezone.utc)

# -----------------------------
# Key Pairs
# -----------------------------
def generate_head_key_pair(study_program: str, key_size: int = CryptoParams.rsa_key_size) -> HeadKeyPair:
    """
    Generates the RSA signing key pair for a study program head.

    Raises:
        SigningError: If key generation fails
    """
    try:
        return _generate_head_key_pair(study_program, key_size)
    except ValueError as e:
        raise SigningError(f"Failed to generate head key pair: {e}") from e


def validate_key_pair(public_key_json: str, private_key_json: str) -> bool:
    """True when the private key signs something the public key verifies."""
    try:
        public_key = public_key_from_json(public_key_json)
        private_key = private_key_from_json(private_key_json)
        digest = sha3_256(KEY_VALIDATION_MESSAGE)
        return verify_bytes(digest, sign_bytes(digest, private_key), public_key)
    except ValueError:
        return False


def get_public_key_info(public_key_json: str) -> dict:
    """Summary of a public key for display: size in bits, truncated modulus, exponent."""
    try:
        public_key = public_key_from_json(public_key_json)
    except ValueError as e:
        raise SigningError(f"Failed to parse public key: {e}") from e
    return {
        "key_size": public_key.n.bit_length(),
        "modulus": format(public_key.n, "x")[:32] + "...",
        "exponent": str(public_key.e),
    }

# -----------------------------
# Signing
# -----------------------------
def _sign_digest(digest: bytes, private_key_json: str, key_id: str) -> DigitalSignature:
    private_key = private_key_from_json(private_key_json)
    signature = sign_bytes(digest, private_key)
    return DigitalSignature(
        signature=format(signature, "x"),
        algorithm=SIGNATURE_ALGORITHM,
        key_id=key_id,
        timestamp=_now(),
        data_hash=to_hex(digest),
    )


def sign_academic_record(record: AcademicRecord, private_key_json: str, key_id: str) -> DigitalSignature:
    """
    Signs the SHA3-256 digest of a record's canonical serialization.

    Args:
        record (AcademicRecord): Record to sign
        private_key_json (str): Head private key in JSON hex form
        key_id (str): Identifier of the signing key

    Returns:
        DigitalSignature: Signature hex, algorithm, key id, timestamp and digest

    Raises:
        SigningError: If the key is malformed or too small for the digest

    Cryptographic principles:
    - Hash-then-sign: the RSA operation covers a fixed 256-bit digest
    - Integrity: any change to a signed field changes the digest
    """
    try:
        signature = _sign_digest(hash_academic_record(record), private_key_json, key_id)
    except ValueError as e:
        raise SigningError(f"Failed to sign academic record: {e}") from e
    logger.info("Signed record %s with key %s", record.nim, key_id)
    return signature


def sign_data(data: Union[str, bytes], private_key_json: str, key_id: str) -> DigitalSignature:
    try:
        return _sign_digest(sha3_256(data), private_key_json, key_id)
    except ValueError as e:
        raise SigningError(f"Failed to sign data: {e}") from e


def create_signed_record(record: AcademicRecord, private_key_json: str, key_id: str) -> dict:
    return {
        "record": record,
        "signature": sign_academic_record(record, private_key_json, key_id),
        "signed_at": _now(),
    }


def sign_multiple_records(records: list[AcademicRecord], private_key_json: str, key_id: str) -> list[dict]:
    return [
        {"record": record, "signature": sign_academic_record(record, private_key_json, key_id)}
        for record in records
    ]

# -----------------------------
# Verification
# -----------------------------
def _verify_digest(digest: bytes, signature: DigitalSignature, public_key_json: str,
                   mismatch_message: str) -> SignatureVerification:
    try:
        if not compare_hashes(to_hex(digest), signature.data_hash):
            logger.warning("Signature %s: %s", signature.key_id, mismatch_message)
            return SignatureVerification(is_valid=False, message=mismatch_message, verified_at=_now())

        public_key = public_key_from_json(public_key_json)
        is_valid = verify_bytes(digest, int(signature.signature, 16), public_key)
    except (ValueError, TypeError) as e:
        return SignatureVerification(is_valid=False, message=f"Verification failed: {e}", verified_at=_now())

    if not is_valid:
        logger.warning("Invalid digital signature under key %s", signature.key_id)
    return SignatureVerification(
        is_valid=is_valid,
        message="Signature verified successfully" if is_valid else "Invalid digital signature",
        verified_at=_now(),
        key_id=signature.key_id,
    )


def verify_academic_record(record: AcademicRecord, signature: DigitalSignature,
                           public_key_json: str) -> SignatureVerification:
    """
    Verifies a record signature. Never raises.

    A recomputed digest that differs from the stored one is reported as a
    modified record before any RSA work; otherwise the RSA proof is checked
    against the head public key.
    """
    return _verify_digest(hash_academic_record(record), signature, public_key_json,
                          "Record has been modified - hash mismatch")


def verify_data(data: Union[str, bytes], signature: DigitalSignature, public_key_json: str) -> SignatureVerification:
    return _verify_digest(sha3_256(data), signature, public_key_json,
                          "Data has been modified - hash mismatch")


def verify_multiple_records(signed_records: list[dict], public_key_json: str) -> list[dict]:
    return [
        {"record": item["record"],
         "verification": verify_academic_record(item["record"], item["signature"], public_key_json)}
        for item in signed_records
    ]


def check_record_signature(record: AcademicRecord, signature,
                           public_key_json: str) -> tuple[VerificationStatus, str]:
    """
    Three-way signature state of a record with its verification message.

    A record that was never signed (no signature, or an empty signature
    value) is UNVERIFIED; a signature that fails to verify is INVALID.
    """
    if signature is None or not signature.signature:
        return VerificationStatus.UNVERIFIED, "Record is not signed"
    result = verify_academic_record(record, signature, public_key_json)
    status = VerificationStatus.VERIFIED if result.is_valid else VerificationStatus.INVALID
    return status, result.message


def verification_status(record: AcademicRecord, signature, public_key_json: str) -> VerificationStatus:
    return check_record_signature(record, signature, public_key_json)[0]
