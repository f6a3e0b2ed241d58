import logging
from typing import Optional

from academic_vault.errors import (DataTooLarge, ExponentNotCoprime, InvalidHashLength, InvalidKeySize)
from academic_vault.models import (CryptoParams, RSAKeyPair, RSAPrivateKey, RSAPublicKey, RSA_PUBLIC_EXPONENT)
from academic_vault.utils.bigint import (gcd, generate_prime, mod_inverse, mod_pow)

logger = logging.getLogger(__name__)

# -----------------------------
# Key Generation
# -----------------------------
def generate_key_pair(key_size: int = CryptoParams.rsa_key_size,
                      max_attempts: int = CryptoParams.prime_max_attempts,
                      rounds: int = CryptoParams.miller_rabin_rounds) -> RSAKeyPair:
    """
    Generate a textbook RSA key pair with e = 65537.

    Two distinct primes of key_size/2 bits each are drawn; the modulus is
    their product and d is the inverse of e modulo phi(n).

    Args:
        key_size: Modulus size in bits, at least 512 and even
        max_attempts: Candidate bound for each prime search
        rounds: Miller-Rabin witnesses per candidate

    Returns:
        RSAKeyPair

    Raises:
        InvalidKeySize: If key_size is below 512 or odd
        ExponentNotCoprime: If gcd(e, phi) != 1
        PrimeGenerationTimeout: If a prime search exhausts its bound
    """
    if key_size < 512 or key_size % 2:
        raise InvalidKeySize(f"RSA key size must be an even number of bits >= 512, got {key_size}")

    half = key_size // 2
    p = generate_prime(half, max_attempts, rounds)
    q = generate_prime(half, max_attempts, rounds)
    while q == p:
        q = generate_prime(half, max_attempts, rounds)

    n = p * q
    phi = (p - 1) * (q - 1)
    e = RSA_PUBLIC_EXPONENT
    if gcd(e, phi) != 1:
        raise ExponentNotCoprime("Public exponent is not coprime to phi(n)")
    d = mod_inverse(e, phi)
    logger.debug("Generated %d-bit RSA key pair", n.bit_length())
    return RSAKeyPair(
        public_key=RSAPublicKey(n=n, e=e),
        private_key=RSAPrivateKey(n=n, d=d, p=p, q=q),
    )

# -----------------------------
# Textbook Operations
# -----------------------------
def _check_range(value: int, n: int, what: str):
    if value < 0 or value >= n:
        raise DataTooLarge(f"{what} must be a non-negative integer smaller than the modulus")


def sign(message: int, private_key: RSAPrivateKey) -> int:
    _check_range(message, private_key.n, "Message")
    return mod_pow(message, private_key.d, private_key.n)


def verify(signature: int, public_key: RSAPublicKey) -> int:
    """Recover the signed integer, signature^e mod n."""
    _check_range(signature, public_key.n, "Signature")
    return mod_pow(signature, public_key.e, public_key.n)


def encrypt(message: int, public_key: RSAPublicKey) -> int:
    _check_range(message, public_key.n, "Message")
    return mod_pow(message, public_key.e, public_key.n)


def decrypt(ciphertext: int, private_key: RSAPrivateKey) -> int:
    _check_range(ciphertext, private_key.n, "Ciphertext")
    return mod_pow(ciphertext, private_key.d, private_key.n)

# -----------------------------
# Byte Helpers
# -----------------------------
def bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")


def int_to_bytes(num: int, length: Optional[int] = None) -> bytes:
    """Big-endian unsigned encoding, left padded with zeros to ``length``."""
    size = max(1, (num.bit_length() + 7) // 8)
    if length is not None:
        if size > length:
            raise DataTooLarge(f"Integer needs {size} bytes, more than {length}")
        size = length
    return num.to_bytes(size, "big")


def get_max_data_size(key_size: int) -> int:
    """Bytes of payload that comfortably fit below a key_size-bit modulus."""
    return (key_size - 64) // 8


def sign_bytes(data: bytes, private_key: RSAPrivateKey) -> int:
    return sign(bytes_to_int(data), private_key)


def verify_bytes(data: bytes, signature: int, public_key: RSAPublicKey) -> bool:
    """Check a signature over raw bytes; malformed signatures verify as False."""
    try:
        return verify(signature, public_key) == bytes_to_int(data)
    except DataTooLarge:
        return False


def _check_digest(digest: bytes):
    if not 20 <= len(digest) <= 64:
        raise InvalidHashLength(f"Hash must be between 20 and 64 bytes, got {len(digest)}")


def sign_hash(digest: bytes, private_key: RSAPrivateKey) -> int:
    _check_digest(digest)
    return sign_bytes(digest, private_key)


def verify_hash_signature(digest: bytes, signature: int, public_key: RSAPublicKey) -> bool:
    _check_digest(digest)
    return verify_bytes(digest, signature, public_key)
