from academic_vault.errors import (InvalidShare, InvalidThreshold, MalformedInput, SecretTooLarge)
from academic_vault.models import (SecretShare)
from academic_vault.utils.bigint import (mod_inverse, random_below)

# Field modulus shared by every deployment; shares carry it as a decimal string.
PRIME = int(
    "13407807929942597099574024998205846127479365820592393377723561443721764030073"
    "546976801874298166903427690031858186486050853753882811946569946433649006084171"
)

# -----------------------------
# Shamir Secret Sharing
# -----------------------------
class ShamirSecretSharing:
    """
    (t, n) threshold secret sharing over GF(PRIME).

    The secret is the constant term of a random polynomial of degree t - 1;
    share i is the point (i, f(i)). Any t shares recover f(0) by Lagrange
    interpolation, fewer reveal nothing about it.
    """

    def __init__(self, prime: int = PRIME):
        self.prime = prime

    def get_prime(self) -> int:
        return self.prime

    def evaluate_polynomial(self, coefficients: list[int], x: int) -> int:
        # Horner's rule, highest degree first
        result = 0
        for coeff in reversed(coefficients):
            result = (result * x + coeff) % self.prime
        return result

    def create_shares(self, secret: int, threshold: int, total_shares: int) -> list[SecretShare]:
        """
        Split ``secret`` into ``total_shares`` shares, any ``threshold`` of which recover it.

        Raises:
            InvalidThreshold: If threshold < 1 or threshold > total_shares
            SecretTooLarge: If secret is not in [0, prime)
        """
        if threshold < 1 or threshold > total_shares:
            raise InvalidThreshold(
                f"Invalid threshold {threshold} for {total_shares} shares"
            )
        if secret < 0 or secret >= self.prime:
            raise SecretTooLarge("Secret must be smaller than the field prime")

        coefficients = [secret] + [random_below(self.prime) for _ in range(threshold - 1)]
        return [
            SecretShare(x=x, y=str(self.evaluate_polynomial(coefficients, x)))
            for x in range(1, total_shares + 1)
        ]

    def reconstruct_secret(self, shares: list[SecretShare]) -> int:
        """
        Lagrange interpolation of the shared polynomial at x = 0.

        Supplying fewer shares than the threshold yields an unrelated value;
        callers enforce the threshold.

        Raises:
            InvalidShare: If no shares are given, x values repeat, or a y value is malformed
        """
        if not shares:
            raise InvalidShare("At least one share is required")
        xs = [s.x for s in shares]
        if len(set(xs)) != len(xs):
            raise InvalidShare("Duplicate share x coordinates")
        try:
            ys = [int(s.y) % self.prime for s in shares]
        except ValueError:
            raise InvalidShare("Share y value is not a decimal integer") from None

        p = self.prime
        secret = 0
        for i, (xi, yi) in enumerate(zip(xs, ys)):
            num = 1
            den = 1
            for j, xj in enumerate(xs):
                if i == j:
                    continue
                num = (num * -xj) % p
                den = (den * (xi - xj)) % p
            secret = (secret + yi * num * mod_inverse(den, p)) % p
        return (secret + p) % p

# -----------------------------
# String Wrappers
# -----------------------------
def _check_prime(prime: str):
    if str(prime) != str(PRIME):
        raise InvalidShare("Shares belong to a different prime field")


def share_hex_string(hex_secret: str, threshold: int, total_shares: int) -> dict:
    """
    Share a hex string as an integer.

    Returns:
        {"shares": [SecretShare, ...], "prime": decimal string}
    """
    cleaned = hex_secret[2:] if hex_secret.lower().startswith("0x") else hex_secret
    try:
        secret = int(cleaned, 16) if cleaned else 0
    except ValueError:
        raise MalformedInput("Secret is not valid hex") from None
    shares = ShamirSecretSharing().create_shares(secret, threshold, total_shares)
    return {"shares": shares, "prime": str(PRIME)}


def reconstruct_hex_string(shares: list[SecretShare], prime: str, original_length: int) -> str:
    """Recover a shared hex string, left padded with zeros to ``original_length`` digits."""
    _check_prime(prime)
    secret = ShamirSecretSharing().reconstruct_secret(shares)
    return format(secret, "x").zfill(original_length)


def share_string(text: str, threshold: int, total_shares: int) -> dict:
    """Share UTF-8 text; the result also records its hex length for reconstruction."""
    hex_secret = text.encode("utf-8").hex()
    result = share_hex_string(hex_secret, threshold, total_shares)
    result["original_length"] = len(hex_secret)
    return result


def reconstruct_string(shares: list[SecretShare], prime: str, original_length: int) -> str:
    hex_secret = reconstruct_hex_string(shares, prime, original_length)
    try:
        return bytes.fromhex(hex_secret).decode("utf-8")
    except ValueError:
        raise InvalidShare("Reconstructed value is not valid UTF-8 text") from None


def share_aes_key(key_hex: str, threshold: int, total_shares: int) -> dict:
    return share_hex_string(key_hex, threshold, total_shares)


def reconstruct_aes_key(shares: list[SecretShare], prime: str, key_length: int = 64) -> str:
    return reconstruct_hex_string(shares, prime, key_length)
