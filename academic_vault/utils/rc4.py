from base64 import b64encode, b64decode
from typing import Union

import numpy as np

from academic_vault.errors import (InvalidKeySize, MalformedInput)

# -----------------------------
# RC4 Stream Cipher
# -----------------------------
class RC4:
    """
    RC4 stream cipher (KSA + PRGA).

    Encryption and decryption are the same XOR with the keystream. The
    keystream position advances with every call, so use a fresh instance
    (or ``reset``) per message.

    Args:
        key: 1 to 256 key bytes, or a string taken as UTF-8
    """

    def __init__(self, key: Union[bytes, str]):
        if isinstance(key, str):
            key = key.encode("utf-8")
        if not 1 <= len(key) <= 256:
            raise InvalidKeySize("RC4 key must be between 1 and 256 bytes")
        self.key = bytes(key)
        self.reset()

    def reset(self):
        """Re-run the key schedule, rewinding the keystream."""
        S = list(range(256))
        j = 0
        key_len = len(self.key)
        for i in range(256):
            j = (j + S[i] + self.key[i % key_len]) % 256
            S[i], S[j] = S[j], S[i]
        self.S = S
        self.i = 0
        self.j = 0

    def keystream(self, length: int) -> np.ndarray:
        S = self.S
        i, j = self.i, self.j
        out = np.empty(length, dtype=np.uint8)
        for k in range(length):
            i = (i + 1) % 256
            j = (j + S[i]) % 256
            S[i], S[j] = S[j], S[i]
            out[k] = S[(S[i] + S[j]) % 256]
        self.i, self.j = i, j
        return out

    def process(self, data: bytes) -> bytes:
        buf = np.frombuffer(bytes(data), dtype=np.uint8)
        return (buf ^ self.keystream(len(buf))).tobytes()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt UTF-8 text, Base64 output."""
        return b64encode(self.process(plaintext.encode("utf-8"))).decode("ascii")

    def decrypt(self, ciphertext_b64: str) -> str:
        try:
            raw = b64decode(ciphertext_b64, validate=True)
        except ValueError:
            raise MalformedInput("Ciphertext is not valid Base64") from None
        try:
            return self.process(raw).decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedInput("Decrypted data is not valid UTF-8 (wrong key?)") from None

# -----------------------------
# One-shot Helpers
# -----------------------------
def rc4_encrypt(plaintext: str, key: Union[bytes, str]) -> str:
    return RC4(key).encrypt(plaintext)


def rc4_decrypt(ciphertext_b64: str, key: Union[bytes, str]) -> str:
    return RC4(key).decrypt(ciphertext_b64)


def encrypt_binary(data: bytes, key: Union[bytes, str]) -> bytes:
    return RC4(key).process(data)


def decrypt_binary(data: bytes, key: Union[bytes, str]) -> bytes:
    return RC4(key).process(data)
