import json
import logging
import math
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional, Union

from academic_vault.errors import (InvalidRecord, RecordDecryptionError)
from academic_vault.models import (
    AccessResponse, AccessType, AcademicRecord, AdvisorShare, Course, CryptoParams, bcolors, DigitalSignature, DirectKey,
    EncryptedAcademicRecord, GRADE_POINTS, GroupAccessShare, KeyReconstructionRequest, MAX_COURSES,
    MAX_TOTAL_CREDITS, ProtectedRecord
)
from academic_vault.encryption import (
    decrypt_academic_record, encrypt_academic_record, generate_secure_aes_key, reconstruct_key_from_shares,
    share_key_among_advisors, validate_decryption_request
)
from academic_vault.signature import (check_record_signature, sign_academic_record, verification_status)
from academic_vault.utils.keygen import (private_key_from_json, public_key_from_json)
from academic_vault.utils.keystore import (retrieve_key_from_keystore)
from academic_vault.utils.rsa import (bytes_to_int, decrypt, encrypt, int_to_bytes)

logger = logging.getLogger(__name__)

DIRECT_ACCESS_ROLES = ("student", "advisor", "head")


def generate_id() -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(8))
    return f"id_{int(time.time() * 1000)}_{suffix}"

# -----------------------------
# Record Preparation
# -----------------------------
def calculate_ipk(courses: list[Course]) -> float:
    """
    Credit-weighted grade point average, rounded half up to two decimals.

    Args:
        courses (list[Course]): Graded courses

    Returns:
        float: IPK, 0 when no credits were taken
    """
    total_points = 0.0
    total_credits = 0
    for course in courses:
        total_points += GRADE_POINTS.get(course.grade, 0.0) * course.credits
        total_credits += course.credits
    if total_credits <= 0:
        return 0
    return math.floor(total_points / total_credits * 100 + 0.5) / 100


def prepare_record(nim: str, name: str, courses: list[Union[Course, dict]]) -> AcademicRecord:
    """
    Validates raw record input and computes its IPK.

    Raises:
        InvalidRecord: On missing fields, course count outside 1..12, more
            than 24 total credits, or an unknown grade
    """
    if not nim or not name or not courses:
        raise InvalidRecord("Missing required fields")
    courses = [c if isinstance(c, Course) else Course(**c) for c in courses]
    if len(courses) > MAX_COURSES:
        raise InvalidRecord(f"Maximum {MAX_COURSES} courses allowed")

    for i, course in enumerate(courses, start=1):
        if not isinstance(course.credits, int) or course.credits < 1:
            raise InvalidRecord(f"Invalid credits '{course.credits}' for course {i}")
        if course.grade not in GRADE_POINTS:
            raise InvalidRecord(f"Invalid grade '{course.grade}' for course {i}")
    if sum(c.credits for c in courses) > MAX_TOTAL_CREDITS:
        raise InvalidRecord(f"Total credits cannot exceed {MAX_TOTAL_CREDITS} SKS")

    return AcademicRecord(nim=nim, name=name, courses=courses, ipk=calculate_ipk(courses))

# -----------------------------
# Direct Access Keys
# -----------------------------
def create_direct_access_keys(aes_key: str, user_ids: list[str], public_keys: dict,
                              record_id: str = "") -> list[DirectKey]:
    """
    Wraps the record key under each identity's RSA public key.

    The key's hex text is taken as UTF-8 bytes, read as a big-endian integer
    and RSA-encrypted; the wrapped key is stored as lowercase hex.

    Args:
        aes_key (str): Hex AES key
        user_ids (list[str]): Identities granted direct access
        public_keys (dict): user id -> public key JSON

    Returns:
        list[DirectKey]: One wrapped key per identity

    Cryptographic principles:
    - Asymmetric key wrapping: only the identity's private key unwraps
    - Textbook RSA: the key integer must be smaller than every modulus
    """
    message = bytes_to_int(aes_key.encode("utf-8"))
    keys = []
    for user_id in user_ids:
        if user_id not in public_keys:
            raise InvalidRecord(f"No public key for user {user_id}")
        wrapped = encrypt(message, public_key_from_json(public_keys[user_id]))
        keys.append(DirectKey(record_id=record_id, user_id=user_id, encrypted_key=format(wrapped, "x")))
    return keys


def decrypt_direct_access_key(encrypted_key: str, private_key_json: str) -> str:
    """
    Unwraps a direct access key.

    Raises:
        RecordDecryptionError: If the private key does not unwrap a hex AES key
    """
    try:
        plain = decrypt(int(encrypted_key, 16), private_key_from_json(private_key_json))
        aes_key = int_to_bytes(plain).decode("utf-8")
    except ValueError as e:
        raise RecordDecryptionError(f"Failed to unwrap direct access key: {e}") from e
    if len(aes_key) not in (32, 48, 64) or any(c not in string.hexdigits for c in aes_key):
        raise RecordDecryptionError("Wrapped key did not decrypt to an AES key")
    return aes_key

# -----------------------------
# Dual-Access Protocol
# -----------------------------
def protect_record(record: AcademicRecord, identities: dict, advisor_pool: list[str], public_keys: dict,
                   head_private_key: str, head_key_id: str, created_by: Optional[str] = None,
                   aes_key: Optional[str] = None, params: CryptoParams = CryptoParams()) -> ProtectedRecord:
    """
    Encrypts, wraps, shares and signs an academic record.

    Steps:
    1. Generate (or accept) an AES record key K
    2. Encrypt the record's canonical JSON under K
    3. Wrap K for the student, advisor and head identities
    4. Split K into one Shamir share per advisor in the pool
    5. Sign the SHA3-256 of the canonical record string with the head key

    Args:
        record (AcademicRecord): Prepared record
        identities (dict): {"student": id, "advisor": id, "head": id}
        advisor_pool (list[str]): Advisors receiving shares
        public_keys (dict): user id -> public key JSON for the three identities
        head_private_key (str): Head private key JSON
        head_key_id (str): Identifier of the head key
        created_by (str, optional): Creator id, defaults to the advisor identity
        aes_key (str, optional): Existing record key
        params (CryptoParams): Threshold, key size and key source

    Returns:
        ProtectedRecord

    Cryptographic principles:
    - Dual access: individual RSA unwrap or cooperative Shamir reconstruction
    - Integrity binding: signature over the plaintext's canonical digest
    """
    missing = [role for role in DIRECT_ACCESS_ROLES if not identities.get(role)]
    if missing:
        raise InvalidRecord(f"Missing direct access identities: {', '.join(missing)}")

    key = aes_key or generate_secure_aes_key(params.aes_key_size, params.key_source)
    encrypted = encrypt_academic_record(record, key)
    record_id = generate_id()

    direct_keys = create_direct_access_keys(
        key, [identities[role] for role in DIRECT_ACCESS_ROLES], public_keys, record_id
    )
    sharing = share_key_among_advisors(key, advisor_pool, params.shamir_threshold)
    shares = [
        GroupAccessShare(record_id=record_id, advisor_id=s.advisor_id, share_x=s.share_x,
                         share_y=s.share_y, prime=sharing.prime)
        for s in sharing.shares
    ]
    signature = sign_academic_record(record, head_private_key, head_key_id)

    logger.info("Protected record %s for %s: %d direct keys, %d shares",
                record_id, record.nim, len(direct_keys), len(shares))
    return ProtectedRecord(
        record=EncryptedAcademicRecord(
            id=record_id,
            student_id=identities["student"],
            encrypted_data=encrypted.encrypted_data,
            signature=signature.signature,
            created_by=created_by or identities["advisor"],
            created_at=datetime.now(timezone.utc),
        ),
        direct_keys=direct_keys,
        shares=shares,
        signature=signature,
    )


def access_record(protected: ProtectedRecord, direct_key: Optional[DirectKey], private_key_json: Optional[str],
                  head_public_key: str, params: CryptoParams = CryptoParams()) -> AccessResponse:
    """
    Direct access path of the access decision.

    Returns DIRECT with the decrypted record when the caller holds a wrapped
    key that unwraps, GROUP_REQUIRED when it holds none, DENIED when the
    unwrap or decryption fails.
    """
    if direct_key is None:
        return AccessResponse(
            success=False,
            access_type=AccessType.GROUP_REQUIRED,
            message=f"Need {params.shamir_threshold} advisor shares",
            required_share_count=params.shamir_threshold,
        )

    try:
        aes_key = decrypt_direct_access_key(direct_key.encrypted_key, private_key_json)
        record = decrypt_academic_record(protected.record.encrypted_data, aes_key)
    except ValueError as e:
        logger.warning("Direct access to %s denied for %s: %s", protected.record.id, direct_key.user_id, e)
        return AccessResponse(success=False, access_type=AccessType.DENIED, message="Direct access failed")

    return AccessResponse(
        success=True,
        access_type=AccessType.DIRECT,
        message="Direct access granted",
        data=record,
        verification_status=verification_status(record, protected.signature, head_public_key),
    )


def group_decrypt(shares: list[Union[GroupAccessShare, AdvisorShare]], prime: str, encrypted_data: str,
                  signature: Optional[DigitalSignature], head_public_key: str, requested_by: str = "",
                  params: CryptoParams = CryptoParams()) -> AccessResponse:
    """
    Threshold access path: rebuild K from advisor shares and decrypt.

    The share count and share format are checked before any interpolation.
    A successful decryption is reported with the record's signature status.
    """
    threshold = params.shamir_threshold
    if len(shares) < threshold:
        return AccessResponse(success=False, access_type=AccessType.DENIED,
                              message=f"Need minimum {threshold} shares")

    request = KeyReconstructionRequest(
        key_id="",
        advisor_shares=[AdvisorShare(advisor_id=s.advisor_id, share_x=s.share_x, share_y=s.share_y)
                        for s in shares],
        prime=prime,
        requested_by=requested_by,
    )
    is_valid, message = validate_decryption_request(request, threshold)
    if not is_valid:
        return AccessResponse(success=False, access_type=AccessType.DENIED, message=message)

    try:
        aes_key = reconstruct_key_from_shares(request, threshold, params.aes_key_size // 4)
        record = decrypt_academic_record(encrypted_data, aes_key)
    except ValueError as e:
        logger.warning("Group decryption requested by %s failed: %s", requested_by or "unknown", e)
        return AccessResponse(success=False, access_type=AccessType.DENIED, message="Group decryption failed")

    status, message = check_record_signature(record, signature, head_public_key)
    return AccessResponse(success=True, access_type=AccessType.DIRECT, message=message,
                          data=record, verification_status=status)

# -----------------------------
# File Workflows
# -----------------------------
def protected_record_to_dict(protected: ProtectedRecord) -> dict:
    rec = protected.record
    return {
        "record": {
            "id": rec.id,
            "studentId": rec.student_id,
            "encryptedData": rec.encrypted_data,
            "signature": rec.signature,
            "createdBy": rec.created_by,
            "createdAt": rec.created_at.isoformat(),
        },
        "directKeys": [
            {"recordId": k.record_id, "userId": k.user_id, "encryptedKey": k.encrypted_key}
            for k in protected.direct_keys
        ],
        "shares": [
            {"recordId": s.record_id, "advisorId": s.advisor_id, "x": s.share_x, "y": s.share_y, "prime": s.prime}
            for s in protected.shares
        ],
        "signature": protected.signature.to_dict(),
    }


def protected_record_from_dict(data: dict) -> ProtectedRecord:
    try:
        rec = data["record"]
        return ProtectedRecord(
            record=EncryptedAcademicRecord(
                id=rec["id"],
                student_id=rec["studentId"],
                encrypted_data=rec["encryptedData"],
                signature=rec.get("signature", ""),
                created_by=rec.get("createdBy", ""),
                created_at=datetime.fromisoformat(rec["createdAt"]),
            ),
            direct_keys=[DirectKey(record_id=k["recordId"], user_id=k["userId"], encrypted_key=k["encryptedKey"])
                         for k in data.get("directKeys", [])],
            shares=[GroupAccessShare(record_id=s["recordId"], advisor_id=s["advisorId"], share_x=s["x"],
                                     share_y=s["y"], prime=s["prime"])
                    for s in data.get("shares", [])],
            signature=DigitalSignature.from_dict(data["signature"]),
        )
    except (KeyError, TypeError) as e:
        raise InvalidRecord(f"Malformed protected record bundle: {e}") from None


def save_protected_record(protected: ProtectedRecord, path: str):
    with open(path, "w") as f:
        json.dump(protected_record_to_dict(protected), f, indent=2)


def load_protected_record(path: str) -> ProtectedRecord:
    with open(path, "r") as f:
        return protected_record_from_dict(json.load(f))


def _key_text(value) -> str:
    # Key files hold either the key object or its JSON text
    return json.dumps(value) if isinstance(value, dict) else value


def load_private_key(privfile: Optional[str] = None, keystore: Optional[str] = None,
                     passphrase: Optional[str] = None, key_name: Optional[str] = None) -> str:
    """
    Loads a private key JSON from the keystore when credentials are given,
    otherwise from a plain key file.
    """
    if keystore and passphrase and key_name:
        return _key_text(retrieve_key_from_keystore(passphrase, key_name, keystore)["private_key"])
    if not privfile:
        raise ValueError(f"{bcolors.FAIL}Private key file or keystore credentials required{bcolors.ENDC}")
    with open(privfile, "r") as f:
        return _key_text(json.load(f)["private_key"])


def load_public_key(pubfile: str) -> str:
    with open(pubfile, "r") as f:
        return _key_text(json.load(f)["public_key"])


def load_record_file(record_file: str) -> AcademicRecord:
    """Reads ``{"nim", "name", "courses"}`` input JSON and prepares the record."""
    with open(record_file, "r") as f:
        data = json.load(f)
    return prepare_record(data.get("nim", ""), data.get("name", ""), data.get("courses", []))


def protect_record_file(record_file: str, identities: dict, advisor_pool: list[str], pubfiles: dict,
                        head_private_key: str, head_key_id: str, out_file: str = "protected_record.json",
                        params: CryptoParams = CryptoParams()) -> str:
    """
    File front-end for ``protect_record``.

    Args:
        record_file (str): Record input JSON
        identities (dict): {"student": id, "advisor": id, "head": id}
        advisor_pool (list[str]): Advisors receiving shares
        pubfiles (dict): user id -> public key file for the three identities
        head_private_key (str): Head private key JSON
        head_key_id (str): Identifier of the head key
        out_file (str): Bundle output path

    Returns:
        str: Path of the written bundle
    """
    record = load_record_file(record_file)
    public_keys = {user_id: load_public_key(path) for user_id, path in pubfiles.items()}
    protected = protect_record(record, identities, advisor_pool, public_keys, head_private_key,
                               head_key_id, params=params)
    save_protected_record(protected, out_file)
    return out_file


def direct_access_file(bundle_file: str, user_id: str, private_key_json: str, head_pubfile: str) -> AccessResponse:
    protected = load_protected_record(bundle_file)
    direct_key = next((k for k in protected.direct_keys if k.user_id == user_id), None)
    return access_record(protected, direct_key, private_key_json, load_public_key(head_pubfile))


def group_access_file(bundle_file: str, advisor_ids: list[str], head_pubfile: str,
                      params: CryptoParams = CryptoParams()) -> AccessResponse:
    """Group decryption using the bundle's shares held by ``advisor_ids``."""
    protected = load_protected_record(bundle_file)
    shares = [s for s in protected.shares if s.advisor_id in advisor_ids]
    prime = protected.shares[0].prime if protected.shares else ""
    return group_decrypt(shares, prime, protected.record.encrypted_data, protected.signature,
                         load_public_key(head_pubfile), requested_by=",".join(advisor_ids), params=params)
