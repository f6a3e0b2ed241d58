from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# -----------------------------
# CLI Colors
# -----------------------------
class bcolors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    GREY = '\033[90m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'
    UNDERLINE = '\033[4m'

# -----------------------------
# Core Parameters
# -----------------------------
@dataclass
class CryptoParams:
    """
    Tunable parameters for the academic record protection scheme.

    Defaults mirror the deployed protocol:
    - 2048-bit textbook RSA with e = 65537 for key wrapping and signatures
    - AES-256 in ECB mode for record bodies
    - (3, n) Shamir threshold over the advisor pool
    - Blum-Blum-Shub as the default source of AES key material
    """
    rsa_key_size: int = 2048  # Modulus size in bits (>= 512, even)
    aes_key_size: int = 256  # 128, 192 or 256
    shamir_threshold: int = 3  # Advisors needed to rebuild a record key
    miller_rabin_rounds: int = 10  # Witness count per primality test
    prime_max_attempts: int = 10000  # Candidates tried before giving up
    bbs_prime_bits: tuple = (128, 160)  # Blum prime size range for BBS
    bbs_reseed_interval: int = 1000  # Draws between BBS reseeds
    key_source: str = "bbs"  # "bbs" or "system" for AES key generation


RSA_PUBLIC_EXPONENT = 65537
GRADE_POINTS = {"A": 4.0, "AB": 3.5, "B": 3.0, "BC": 2.5, "C": 2.0, "D": 1.0, "E": 0.0}
MAX_COURSES = 12
MAX_TOTAL_CREDITS = 24

# -----------------------------
# Enumerations
# -----------------------------
class VerificationStatus(str, Enum):
    """Signature state of a record: unsigned records are UNVERIFIED, not INVALID."""
    VERIFIED = "VERIFIED"
    UNVERIFIED = "UNVERIFIED"
    INVALID = "INVALID"


class AccessType(str, Enum):
    DIRECT = "DIRECT"
    GROUP_REQUIRED = "GROUP_REQUIRED"
    DENIED = "DENIED"

# -----------------------------
# RSA Keys
# -----------------------------
@dataclass(frozen=True)
class RSAPublicKey:
    n: int
    e: int


@dataclass(frozen=True)
class RSAPrivateKey:
    """
    RSA private key. The prime factors are optional since keys loaded from
    storage may carry only (n, d).
    """
    n: int
    d: int
    p: Optional[int] = None
    q: Optional[int] = None


@dataclass(frozen=True)
class RSAKeyPair:
    public_key: RSAPublicKey
    private_key: RSAPrivateKey


@dataclass
class HeadKeyPair:
    """Signing key pair of a study program head, keys in JSON hex form."""
    key_id: str
    public_key: str
    private_key: str
    key_size: int
    created_at: datetime
    study_program: str

# -----------------------------
# Secret Sharing
# -----------------------------
@dataclass(frozen=True)
class SecretShare:
    x: int  # Evaluation point, >= 1
    y: str  # Polynomial value as a decimal string


@dataclass
class AdvisorShare:
    advisor_id: str
    share_x: int
    share_y: str


@dataclass
class ShamirSharingResult:
    key_id: str
    shares: list[AdvisorShare]
    prime: str


@dataclass
class KeyReconstructionRequest:
    key_id: str
    advisor_shares: list[AdvisorShare]
    prime: str
    requested_by: str
    requested_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

# -----------------------------
# Signatures
# -----------------------------
@dataclass
class DigitalSignature:
    """
    RSA-SHA3 signature over the canonical hash of a record.

    The digest is stored next to the signature so a verifier can tell a
    modified record (hash mismatch) apart from a forged signature.
    """
    signature: str
    algorithm: str
    key_id: str
    timestamp: datetime
    data_hash: str

    def to_dict(self) -> dict:
        return {
            "signature": self.signature,
            "algorithm": self.algorithm,
            "keyId": self.key_id,
            "timestamp": self.timestamp.isoformat(),
            "dataHash": self.data_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DigitalSignature":
        return cls(
            signature=data["signature"],
            algorithm=data.get("algorithm", "RSA-SHA3"),
            key_id=data.get("keyId", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            data_hash=data["dataHash"],
        )


@dataclass
class SignatureVerification:
    is_valid: bool
    message: str
    verified_at: datetime
    key_id: Optional[str] = None

# -----------------------------
# Academic Records
# -----------------------------
@dataclass
class Course:
    code: str
    name: str
    credits: int
    grade: str

    def to_dict(self) -> dict:
        return {"code": self.code, "name": self.name, "credits": self.credits, "grade": self.grade}


@dataclass
class AcademicRecord:
    nim: str  # Student identification number
    name: str
    courses: list[Course]
    ipk: float  # Credit-weighted grade point average

    def to_dict(self) -> dict:
        return {
            "nim": self.nim,
            "name": self.name,
            "courses": [c.to_dict() for c in self.courses],
            "ipk": self.ipk,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AcademicRecord":
        return cls(
            nim=data.get("nim", ""),
            name=data.get("name", ""),
            courses=[
                Course(
                    code=c.get("code", ""),
                    name=c.get("name", ""),
                    credits=c.get("credits", 0),
                    grade=c.get("grade", ""),
                )
                for c in data.get("courses", [])
            ],
            ipk=data.get("ipk", 0.0),
        )


@dataclass
class EncryptedAcademicRecord:
    id: str
    student_id: str
    encrypted_data: str  # AES-ECB ciphertext, hex
    signature: str
    created_by: str
    created_at: datetime


@dataclass
class DirectKey:
    """AES record key wrapped under one identity's RSA public key."""
    record_id: str
    user_id: str
    encrypted_key: str  # RSA ciphertext, hex


@dataclass
class GroupAccessShare:
    record_id: str
    advisor_id: str
    share_x: int
    share_y: str
    prime: str


@dataclass
class ProtectedRecord:
    record: EncryptedAcademicRecord
    direct_keys: list[DirectKey]
    shares: list[GroupAccessShare]
    signature: DigitalSignature

# -----------------------------
# Service Results
# -----------------------------
@dataclass
class EncryptionResult:
    encrypted_data: str
    key_used: str


@dataclass
class DecryptionResult:
    success: bool
    message: str
    decrypted_data: Any = None  # Parsed JSON when possible, raw text otherwise


@dataclass
class AccessResponse:
    success: bool
    access_type: AccessType
    message: str
    data: Optional[AcademicRecord] = None
    verification_status: Optional[VerificationStatus] = None
    required_share_count: Optional[int] = None


@dataclass
class TranscriptEncryptionResult:
    encrypted_data: bytes
    encryption_key: str
    file_name: str
    original_size: int
    encrypted_size: int


@dataclass
class TranscriptDecryptionResult:
    success: bool
    message: str
    file_name: str
    decrypted_data: Optional[bytes] = None
