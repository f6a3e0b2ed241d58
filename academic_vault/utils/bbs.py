import logging
from typing import Optional

from academic_vault.errors import (InvalidBlumPrime, InvalidKeySize, PrimeGenerationTimeout)
from academic_vault.models import (CryptoParams)
from academic_vault.utils.bigint import (gcd, is_probably_prime, random_in_range)

logger = logging.getLogger(__name__)

# -----------------------------
# Blum Primes
# -----------------------------
def is_blum_prime(n: int) -> bool:
    """A Blum prime is a prime congruent to 3 mod 4."""
    return n % 4 == 3 and is_probably_prime(n)


def generate_blum_prime(min_bits: int, max_bits: int, max_attempts: int = CryptoParams.prime_max_attempts) -> int:
    """
    Random Blum prime with bit length in [min_bits, max_bits].

    Candidates are forced odd and nudged to 3 mod 4 before the primality
    test.

    Raises:
        PrimeGenerationTimeout: If no Blum prime is found in ``max_attempts`` candidates
    """
    lo = 1 << (min_bits - 1)
    hi = (1 << max_bits) - 1
    for _ in range(max_attempts):
        candidate = random_in_range(lo, hi) | 1
        if candidate % 4 == 1:
            candidate += 2
        if candidate > hi:
            continue
        if is_probably_prime(candidate):
            return candidate
    raise PrimeGenerationTimeout(
        f"Failed to generate Blum prime of {min_bits}-{max_bits} bits after {max_attempts} attempts"
    )


def generate_seed(modulus: int, max_attempts: int = CryptoParams.prime_max_attempts) -> int:
    """
    Random seed in [2, modulus - 1] coprime to the modulus.

    Raises:
        PrimeGenerationTimeout: If no coprime seed is drawn in ``max_attempts`` tries
    """
    for _ in range(max_attempts):
        seed = random_in_range(2, modulus - 1)
        if gcd(seed, modulus) == 1:
            return seed
    raise PrimeGenerationTimeout(f"Failed to draw a seed coprime to the modulus after {max_attempts} attempts")

# -----------------------------
# Blum-Blum-Shub Generator
# -----------------------------
class BlumBlumShub:
    """
    Blum-Blum-Shub pseudorandom bit generator.

    State evolves as x <- x^2 mod M with M = p*q for distinct Blum primes;
    each step emits the least significant bit of x. Predicting the next bit
    is as hard as factoring M, which is why the generator is used for AES
    key material.

    The generator reseeds itself after ``reseed_interval`` draws.
    Instances are not thread-safe.
    """

    def __init__(self, p: Optional[int] = None, q: Optional[int] = None, seed: Optional[int] = None,
                 prime_bits: tuple = CryptoParams.bbs_prime_bits,
                 reseed_interval: int = CryptoParams.bbs_reseed_interval,
                 max_attempts: int = CryptoParams.prime_max_attempts):
        if p is not None or q is not None:
            if p is None or q is None:
                raise InvalidBlumPrime("Both p and q must be supplied")
            if not is_blum_prime(p) or not is_blum_prime(q):
                raise InvalidBlumPrime("p and q must be primes congruent to 3 mod 4")
            if p == q:
                raise InvalidBlumPrime("p and q must be distinct")
        else:
            min_bits, max_bits = prime_bits
            p = generate_blum_prime(min_bits, max_bits, max_attempts)
            q = generate_blum_prime(min_bits, max_bits, max_attempts)
            while q == p:
                q = generate_blum_prime(min_bits, max_bits, max_attempts)

        self.p = p
        self.q = q
        self.M = p * q
        self.reseed_interval = reseed_interval
        self.max_attempts = max_attempts
        if seed is None or not (1 < seed < self.M) or gcd(seed, self.M) != 1:
            seed = generate_seed(self.M, self.max_attempts)
        self.x = (seed * seed) % self.M
        self.generated = 0

    def reseed(self, seed: Optional[int] = None):
        if seed is None or not (1 < seed < self.M) or gcd(seed, self.M) != 1:
            seed = generate_seed(self.M, self.max_attempts)
        self.x = (seed * seed) % self.M
        self.generated = 0
        logger.debug("BBS generator reseeded")

    def next_bit(self) -> int:
        self.x = (self.x * self.x) % self.M
        self.generated += 1
        bit = self.x & 1
        if self.generated >= self.reseed_interval:
            self.reseed()
        return bit

    def next_bits(self, count: int) -> list[int]:
        return [self.next_bit() for _ in range(count)]

    def next_byte(self) -> int:
        value = 0
        for _ in range(8):
            value = (value << 1) | self.next_bit()
        return value

    def next_bytes(self, count: int) -> bytes:
        return bytes(self.next_byte() for _ in range(count))

    def next_int(self, min_value: int = 0, max_value: int = 255,
                 max_attempts: int = CryptoParams.prime_max_attempts) -> int:
        """
        Uniform integer in [min_value, max_value] by rejection sampling.

        Raises:
            PrimeGenerationTimeout: If ``max_attempts`` draws all fall outside the range
        """
        span = max_value - min_value + 1
        if span <= 0:
            raise ValueError("max_value must not be smaller than min_value")
        if span == 1:
            return min_value
        bits = (span - 1).bit_length()
        # Each draw is accepted with probability above 1/2.
        for _ in range(max_attempts):
            value = 0
            for _ in range(bits):
                value = (value << 1) | self.next_bit()
            if value < span:
                return min_value + value
        raise PrimeGenerationTimeout(f"BBS rejection sampling did not converge after {max_attempts} draws")

    def next_big_int(self, bit_length: int) -> int:
        raw = self.next_bytes((bit_length + 7) // 8)
        return int.from_bytes(raw, "big") & ((1 << bit_length) - 1)

    def next_prime(self, bit_length: int, max_attempts: int = CryptoParams.prime_max_attempts) -> int:
        top = 1 << (bit_length - 1)
        for _ in range(max_attempts):
            candidate = self.next_big_int(bit_length) | top | 1
            if is_probably_prime(candidate):
                return candidate
        raise PrimeGenerationTimeout(
            f"Failed to generate {bit_length}-bit prime after {max_attempts} attempts"
        )

    def generate_aes_key(self, key_size: int = 256) -> str:
        """AES key of ``key_size`` bits as lowercase hex."""
        if key_size not in (128, 192, 256):
            raise InvalidKeySize(f"Invalid AES key size: {key_size}")
        return self.next_bytes(key_size // 8).hex()

    def get_parameters(self) -> dict:
        return {"p": self.p, "q": self.q, "M": self.M, "generated": self.generated}

# -----------------------------
# Convenience Helpers
# -----------------------------
def create_secure_generator(prime_bits: tuple = CryptoParams.bbs_prime_bits) -> BlumBlumShub:
    return BlumBlumShub(prime_bits=prime_bits)


def generate_secure_hex(num_bytes: int) -> str:
    return create_secure_generator().next_bytes(num_bytes).hex()


def generate_secure_aes_key(key_size: int = 256) -> str:
    return create_secure_generator().generate_aes_key(key_size)


def generate_secure_seed(bit_length: int = 128) -> int:
    return create_secure_generator().next_big_int(bit_length)
