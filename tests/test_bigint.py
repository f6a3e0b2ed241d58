import pytest

from academic_vault.errors import (NoInverseExists, PrimeGenerationTimeout)
from academic_vault.utils import bigint
from academic_vault.utils.bigint import (
    extended_gcd, gcd, generate_prime, is_probably_prime, mod_inverse, mod_pow, random_in_range
)


def test_mod_pow_matches_builtin():
    base, exp, mod = 0xDEADBEEF, 65537, (1 << 127) - 1
    assert mod_pow(base, exp, mod) == pow(base, exp, mod)
    assert mod_pow(5, 0, 13) == 1
    assert mod_pow(7, 123, 1) == 0


def test_extended_gcd_bezout_identity():
    g, x, y = extended_gcd(240, 46)
    assert g == 2
    assert 240 * x + 46 * y == g
    assert extended_gcd(0, 9) == (9, 0, 1)


def test_gcd():
    assert gcd(48, 18) == 6
    assert gcd(17, 5) == 1


def test_mod_inverse():
    assert mod_inverse(3, 11) == 4
    assert (65537 * mod_inverse(65537, 3120)) % 3120 == 1


def test_mod_inverse_missing():
    with pytest.raises(NoInverseExists):
        mod_inverse(2, 4)


@pytest.mark.parametrize("n", [2, 3, 5, 97, 251, 257, 7919, (1 << 61) - 1, (1 << 127) - 1])
def test_primes_accepted(n):
    assert is_probably_prime(n)


@pytest.mark.parametrize("n", [-7, 0, 1, 4, 100, 561, 41041, 7919 * 7907, (1 << 64) + 1])
def test_composites_rejected(n):
    assert not is_probably_prime(n)


def test_generate_prime_has_exact_bit_length():
    p = generate_prime(128)
    assert p.bit_length() == 128
    assert p % 2 == 1
    assert is_probably_prime(p)


def test_generate_prime_is_bounded(monkeypatch):
    monkeypatch.setattr(bigint, "is_probably_prime", lambda n, rounds=10: False)
    with pytest.raises(PrimeGenerationTimeout):
        generate_prime(64, max_attempts=5)


def test_random_in_range_inclusive():
    values = {random_in_range(3, 5) for _ in range(200)}
    assert values == {3, 4, 5}
    with pytest.raises(ValueError):
        random_in_range(5, 3)
