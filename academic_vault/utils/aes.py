import json
import secrets
from typing import Union

import numpy as np

from academic_vault.errors import (InvalidKeySize, InvalidPadding, MalformedInput)
from academic_vault.models import (AcademicRecord, CryptoParams)
from academic_vault.utils.bbs import (generate_secure_aes_key)

BLOCK_SIZE = 16
ROUNDS = {128: 10, 192: 12, 256: 14}

# -----------------------------
# GF(2^8) Tables
# -----------------------------
def gf_mul(a: int, b: int) -> int:
    """Multiply in GF(2^8) modulo x^8 + x^4 + x^3 + x + 1 (0x11b)."""
    result = 0
    while b:
        if b & 1:
            result ^= a
        a <<= 1
        if a & 0x100:
            a ^= 0x11B
        b >>= 1
    return result


def _build_sbox() -> np.ndarray:
    # exp/log tables over the generator 3 give multiplicative inverses
    exp = [0] * 255
    log = [0] * 256
    x = 1
    for i in range(255):
        exp[i] = x
        log[x] = i
        x = gf_mul(x, 3)

    sbox = np.zeros(256, dtype=np.uint8)
    for a in range(256):
        inv = exp[(255 - log[a]) % 255] if a else 0
        s = inv
        for shift in range(1, 5):
            s ^= ((inv << shift) | (inv >> (8 - shift))) & 0xFF
        sbox[a] = s ^ 0x63
    return sbox


SBOX = _build_sbox()
INV_SBOX = np.argsort(SBOX).astype(np.uint8)

MUL = {k: np.array([gf_mul(i, k) for i in range(256)], dtype=np.uint8) for k in (2, 3, 9, 11, 13, 14)}

RCON = [0x00, 0x01, 0x02, 0x04, 0x08, 0x10, 0x20, 0x40, 0x80, 0x1B, 0x36]

# State bytes are column-major: byte (row r, column c) at index 4*c + r.
SHIFT_ROWS = np.array([0, 5, 10, 15, 4, 9, 14, 3, 8, 13, 2, 7, 12, 1, 6, 11], dtype=np.intp)
INV_SHIFT_ROWS = np.argsort(SHIFT_ROWS)

# -----------------------------
# Padding
# -----------------------------
def pad_pkcs7(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """PKCS#7: append n bytes of value n; an aligned input gains a full block."""
    n = block_size - (len(data) % block_size)
    return data + bytes([n]) * n


def unpad_pkcs7(padded: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """
    Strip PKCS#7 padding.

    Raises:
        InvalidPadding: If the length is not block aligned or the padding bytes are inconsistent
    """
    if not padded or len(padded) % block_size:
        raise InvalidPadding("Ciphertext is not a whole number of blocks")
    n = padded[-1]
    if n < 1 or n > block_size or padded[-n:] != bytes([n]) * n:
        raise InvalidPadding("Invalid PKCS#7 padding")
    return padded[:-n]

# -----------------------------
# Round Transformations
# -----------------------------
# All operate on an (N, 16) uint8 array so ECB processes every block at once.
def _mix_columns(state: np.ndarray) -> np.ndarray:
    s = state.reshape(-1, 4, 4)
    s0, s1, s2, s3 = s[:, :, 0], s[:, :, 1], s[:, :, 2], s[:, :, 3]
    m2, m3 = MUL[2], MUL[3]
    out = np.stack([
        m2[s0] ^ m3[s1] ^ s2 ^ s3,
        s0 ^ m2[s1] ^ m3[s2] ^ s3,
        s0 ^ s1 ^ m2[s2] ^ m3[s3],
        m3[s0] ^ s1 ^ s2 ^ m2[s3],
    ], axis=2)
    return out.reshape(-1, 16)


def _inv_mix_columns(state: np.ndarray) -> np.ndarray:
    s = state.reshape(-1, 4, 4)
    s0, s1, s2, s3 = s[:, :, 0], s[:, :, 1], s[:, :, 2], s[:, :, 3]
    m9, m11, m13, m14 = MUL[9], MUL[11], MUL[13], MUL[14]
    out = np.stack([
        m14[s0] ^ m11[s1] ^ m13[s2] ^ m9[s3],
        m9[s0] ^ m14[s1] ^ m11[s2] ^ m13[s3],
        m13[s0] ^ m9[s1] ^ m14[s2] ^ m11[s3],
        m11[s0] ^ m13[s1] ^ m9[s2] ^ m14[s3],
    ], axis=2)
    return out.reshape(-1, 16)


def expand_key(key: bytes) -> np.ndarray:
    """
    Rijndael key schedule.

    Returns:
        (Nr + 1, 16) uint8 array of round keys
    """
    nk = len(key) // 4
    nr = ROUNDS[len(key) * 8]
    words = [list(key[4 * i:4 * i + 4]) for i in range(nk)]
    for i in range(nk, 4 * (nr + 1)):
        temp = list(words[i - 1])
        if i % nk == 0:
            temp = temp[1:] + temp[:1]
            temp = [int(SBOX[b]) for b in temp]
            temp[0] ^= RCON[i // nk]
        elif nk > 6 and i % nk == 4:
            temp = [int(SBOX[b]) for b in temp]
        words.append([w ^ t for w, t in zip(words[i - nk], temp)])
    flat = np.array(words, dtype=np.uint8).reshape(nr + 1, 16)
    return flat

# -----------------------------
# AES Cipher
# -----------------------------
class AES:
    """
    AES block cipher (FIPS-197) in ECB mode with PKCS#7 padding.

    Identical plaintext blocks produce identical ciphertext blocks; records
    are short and keyed individually, so no IV is carried.

    Args:
        key: Raw key bytes or a hex string
        key_size: 128, 192 or 256 bits; must match the key length
    """

    def __init__(self, key: Union[bytes, str], key_size: int = CryptoParams.aes_key_size):
        if key_size not in ROUNDS:
            raise InvalidKeySize(f"Invalid AES key size: {key_size}")
        if isinstance(key, str):
            try:
                key = bytes.fromhex(key)
            except ValueError:
                raise MalformedInput("AES key is not valid hex") from None
        if len(key) * 8 != key_size:
            raise InvalidKeySize(f"Key length {len(key) * 8} bits does not match key size {key_size}")
        self.key_size = key_size
        self.rounds = ROUNDS[key_size]
        self.round_keys = expand_key(bytes(key))

    def _encrypt_blocks(self, state: np.ndarray) -> np.ndarray:
        rk = self.round_keys
        state = state ^ rk[0]
        for rnd in range(1, self.rounds):
            state = SBOX[state][:, SHIFT_ROWS]
            state = _mix_columns(state) ^ rk[rnd]
        state = SBOX[state][:, SHIFT_ROWS]
        return state ^ rk[self.rounds]

    def _decrypt_blocks(self, state: np.ndarray) -> np.ndarray:
        rk = self.round_keys
        state = state ^ rk[self.rounds]
        for rnd in range(self.rounds - 1, 0, -1):
            state = INV_SBOX[state[:, INV_SHIFT_ROWS]] ^ rk[rnd]
            state = _inv_mix_columns(state)
        state = INV_SBOX[state[:, INV_SHIFT_ROWS]]
        return state ^ rk[0]

    def encrypt_block(self, block: bytes) -> bytes:
        if len(block) != BLOCK_SIZE:
            raise MalformedInput("AES block must be 16 bytes")
        state = np.frombuffer(block, dtype=np.uint8).reshape(1, 16)
        return self._encrypt_blocks(state).tobytes()

    def decrypt_block(self, block: bytes) -> bytes:
        if len(block) != BLOCK_SIZE:
            raise MalformedInput("AES block must be 16 bytes")
        state = np.frombuffer(block, dtype=np.uint8).reshape(1, 16)
        return self._decrypt_blocks(state).tobytes()

    def encrypt(self, data: Union[bytes, str]) -> bytes:
        if isinstance(data, str):
            data = data.encode("utf-8")
        padded = pad_pkcs7(bytes(data))
        state = np.frombuffer(padded, dtype=np.uint8).reshape(-1, 16)
        return self._encrypt_blocks(state).tobytes()

    def decrypt(self, ciphertext: bytes) -> bytes:
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise InvalidPadding("Ciphertext is not a whole number of blocks")
        state = np.frombuffer(bytes(ciphertext), dtype=np.uint8).reshape(-1, 16)
        return unpad_pkcs7(self._decrypt_blocks(state).tobytes())

    def encrypt_to_hex(self, plaintext: Union[bytes, str]) -> str:
        return self.encrypt(plaintext).hex()

    def decrypt_from_hex(self, ciphertext_hex: str) -> str:
        try:
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError:
            raise MalformedInput("Ciphertext is not valid hex") from None
        try:
            return self.decrypt(ciphertext).decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidPadding("Decrypted data is not valid UTF-8") from None

# -----------------------------
# Key Generation and Records
# -----------------------------
def generate_key(key_size: int = CryptoParams.aes_key_size, source: str = CryptoParams.key_source) -> str:
    """
    Random AES key as lowercase hex.

    Args:
        key_size: 128, 192 or 256
        source: "bbs" for the Blum-Blum-Shub generator, "system" for the OS CSPRNG
    """
    if key_size not in ROUNDS:
        raise InvalidKeySize(f"Invalid AES key size: {key_size}")
    if source == "bbs":
        return generate_secure_aes_key(key_size)
    if source == "system":
        return secrets.token_hex(key_size // 8)
    raise ValueError(f"Unknown key source: {source}")


def serialize_record(record: AcademicRecord) -> str:
    """Compact JSON with fields in nim, name, courses, ipk order."""
    return json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)


def encrypt_academic_record(record: AcademicRecord, key_hex: str) -> str:
    return AES(key_hex, len(key_hex) * 4).encrypt_to_hex(serialize_record(record))


def decrypt_academic_record(ciphertext_hex: str, key_hex: str) -> AcademicRecord:
    plaintext = AES(key_hex, len(key_hex) * 4).decrypt_from_hex(ciphertext_hex)
    try:
        return AcademicRecord.from_dict(json.loads(plaintext))
    except (json.JSONDecodeError, AttributeError, TypeError):
        raise MalformedInput("Decrypted record is not valid JSON") from None
