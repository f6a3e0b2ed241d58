import logging
import secrets

from academic_vault.errors import (NoInverseExists, PrimeGenerationTimeout)

logger = logging.getLogger(__name__)

# Trial-division filter ahead of Miller-Rabin. Never changes the outcome,
# only rejects most composites before any modular exponentiation.
SMALL_PRIMES = (
    3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71,
    73, 79, 83, 89, 97, 101, 103, 107, 109, 113, 127, 131, 137, 139, 149, 151,
    157, 163, 167, 173, 179, 181, 191, 193, 197, 199, 211, 223, 227, 229, 233,
    239, 241, 251,
)

# -----------------------------
# Modular Arithmetic
# -----------------------------
def mod_pow(base: int, exp: int, mod: int) -> int:
    """
    Modular exponentiation by square-and-multiply.

    Scans the exponent from its least significant bit, squaring the running
    base at every step and multiplying it into the result on set bits.

    Args:
        base: Base value (reduced mod ``mod`` first)
        exp: Non-negative exponent
        mod: Positive modulus

    Returns:
        base^exp mod mod, or 0 when mod == 1
    """
    if mod == 1:
        return 0
    result = 1
    base %= mod
    while exp > 0:
        if exp & 1:
            result = (result * base) % mod
        exp >>= 1
        base = (base * base) % mod
    return result


def extended_gcd(a: int, b: int) -> tuple[int, int, int]:
    """
    Extended Euclidean Algorithm.

    Returns:
        (g, x, y) with g = gcd(a, b) = a*x + b*y
    """
    if a == 0:
        return b, 0, 1
    g, x1, y1 = extended_gcd(b % a, a)
    return g, y1 - (b // a) * x1, x1


def gcd(a: int, b: int) -> int:
    while b:
        a, b = b, a % b
    return abs(a)


def mod_inverse(a: int, mod: int) -> int:
    """
    Modular multiplicative inverse of ``a`` modulo ``mod``.

    Raises:
        NoInverseExists: If gcd(a, mod) != 1
    """
    g, x, _ = extended_gcd(a % mod, mod)
    if g != 1:
        raise NoInverseExists("Modular inverse does not exist")
    return x % mod

# -----------------------------
# Random Sampling
# -----------------------------
def random_below(n: int) -> int:
    """Uniform integer in [0, n) from the platform CSPRNG."""
    return secrets.randbelow(n)


def random_in_range(lo: int, hi: int) -> int:
    """Uniform integer in [lo, hi] (inclusive)."""
    if hi < lo:
        raise ValueError(f"Empty range [{lo}, {hi}]")
    return lo + secrets.randbelow(hi - lo + 1)


def random_bits(bit_length: int) -> int:
    return secrets.randbits(bit_length)

# -----------------------------
# Primality
# -----------------------------
def is_probably_prime(n: int, rounds: int = 10) -> bool:
    """
    Miller-Rabin probabilistic primality test.

    Writes n - 1 = d * 2^r with d odd and checks ``rounds`` random witnesses
    drawn from [2, n - 2]. A composite survives with probability at most
    4^-rounds.

    Args:
        n: Candidate
        rounds: Number of random witnesses

    Returns:
        False if n is certainly composite, True if n is probably prime
    """
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    for p in SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False

    d = n - 1
    r = 0
    while d % 2 == 0:
        d //= 2
        r += 1

    for _ in range(rounds):
        a = random_in_range(2, n - 2)
        x = mod_pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = mod_pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def generate_prime(bit_length: int, max_attempts: int = 10000, rounds: int = 10) -> int:
    """
    Random probable prime of exactly ``bit_length`` bits.

    Candidates have the top bit forced (exact length) and the low bit forced
    (odd). The search is bounded.

    Raises:
        PrimeGenerationTimeout: If no prime is found in ``max_attempts`` candidates
    """
    if bit_length < 2:
        raise ValueError("Prime bit length must be at least 2")
    top = 1 << (bit_length - 1)
    for attempt in range(1, max_attempts + 1):
        candidate = random_bits(bit_length) | top | 1
        if is_probably_prime(candidate, rounds):
            logger.debug("Found %d-bit prime after %d candidates", bit_length, attempt)
            return candidate
    raise PrimeGenerationTimeout(
        f"Failed to generate {bit_length}-bit prime after {max_attempts} attempts"
    )
