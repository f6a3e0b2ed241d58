import hmac
from pathlib import Path
from typing import Union

from academic_vault.utils.keccak import (sponge, SHA3_SUFFIX, SHAKE_SUFFIX)

# -----------------------------
# SHA-3 Variants
# -----------------------------
# name -> (capacity bits, output bits)
SHA3_VARIANTS = {
    "SHA3-224": (448, 224),
    "SHA3-256": (512, 256),
    "SHA3-384": (768, 384),
    "SHA3-512": (1024, 512),
}

SHAKE_CAPACITY = {
    "SHAKE128": 256,
    "SHAKE256": 512,
}

BytesLike = Union[bytes, bytearray, str]


def _to_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def sha3_hash(data: BytesLike, variant: str = "SHA3-256") -> bytes:
    """
    Fixed-output SHA-3 digest (FIPS 202).

    Args:
        data: Message; strings are hashed as UTF-8
        variant: One of SHA3-224, SHA3-256, SHA3-384, SHA3-512

    Returns:
        Digest bytes of the variant's output length
    """
    try:
        capacity, output_bits = SHA3_VARIANTS[variant.upper()]
    except KeyError:
        raise ValueError(f"Unsupported SHA3 variant: {variant}") from None
    return sponge(_to_bytes(data), capacity, output_bits // 8, SHA3_SUFFIX)


def sha3_224(data: BytesLike) -> bytes:
    return sha3_hash(data, "SHA3-224")


def sha3_256(data: BytesLike) -> bytes:
    return sha3_hash(data, "SHA3-256")


def sha3_384(data: BytesLike) -> bytes:
    return sha3_hash(data, "SHA3-384")


def sha3_512(data: BytesLike) -> bytes:
    return sha3_hash(data, "SHA3-512")


def shake128(data: BytesLike, output_len: int) -> bytes:
    """SHAKE128 extendable-output function, ``output_len`` bytes."""
    return sponge(_to_bytes(data), SHAKE_CAPACITY["SHAKE128"], output_len, SHAKE_SUFFIX)


def shake256(data: BytesLike, output_len: int) -> bytes:
    """SHAKE256 extendable-output function, ``output_len`` bytes."""
    return sponge(_to_bytes(data), SHAKE_CAPACITY["SHAKE256"], output_len, SHAKE_SUFFIX)

# -----------------------------
# Helpers
# -----------------------------
def to_hex(digest: bytes) -> str:
    return digest.hex()


def compare_hashes(a: Union[bytes, str], b: Union[bytes, str]) -> bool:
    """Constant-time equality for two digests (bytes or hex)."""
    if isinstance(a, str):
        a = a.lower().encode()
    if isinstance(b, str):
        b = b.lower().encode()
    return hmac.compare_digest(a, b)


def hash_concatenated(*parts: BytesLike, variant: str = "SHA3-256") -> bytes:
    return sha3_hash(b"".join(_to_bytes(p) for p in parts), variant)


def hash_file(path: Union[str, Path], variant: str = "SHA3-256") -> bytes:
    with open(path, "rb") as f:
        return sha3_hash(f.read(), variant)


def prepare_for_signing(data: BytesLike) -> bytes:
    """SHA3-256 digest used as the input to RSA signing."""
    return sha3_256(data)

# -----------------------------
# Canonical Record Hash
# -----------------------------
def format_number(value) -> str:
    """
    Decimal rendering of a numeric field for the canonical record string.

    Integral values print without a fractional part (4.0 -> "4") and other
    floats use the shortest round-tripping form (3.75 -> "3.75"). Missing
    values render as the empty string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def _field(obj, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def canonical_record_string(record) -> str:
    """
    Concatenate record fields in signing order, without separators.

    For each course in order: code, name, credits, grade. Then the record's
    nim, name and ipk. Accepts an AcademicRecord or its dict form.
    """
    parts = []
    for course in _field(record, "courses") or []:
        parts.append(_field(course, "code") or "")
        parts.append(_field(course, "name") or "")
        parts.append(format_number(_field(course, "credits")))
        parts.append(_field(course, "grade") or "")
    parts.append(_field(record, "nim") or "")
    parts.append(_field(record, "name") or "")
    parts.append(format_number(_field(record, "ipk")))
    return "".join(parts)


def hash_academic_record(record) -> bytes:
    """SHA3-256 of the canonical record string."""
    return sha3_256(canonical_record_string(record))
