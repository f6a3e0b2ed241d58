import secrets

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from academic_vault.errors import (InvalidKeySize, InvalidPadding, MalformedInput)
from academic_vault.utils.aes import (
    AES, INV_SBOX, MUL, SBOX, decrypt_academic_record, encrypt_academic_record, generate_key, pad_pkcs7,
    unpad_pkcs7
)

PLAINTEXT = bytes.fromhex("00112233445566778899aabbccddeeff")

FIPS_197 = [
    (128, "000102030405060708090a0b0c0d0e0f", "69c4e0d86a7b0430d8cdb78070b4c55a"),
    (192, "000102030405060708090a0b0c0d0e0f1011121314151617", "dda97ca4864cdfe06eaf70a0ec0d7191"),
    (256, "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f", "8ea2b7ca516745bfeafc49904b496089"),
]


def reference_ecb(key: bytes, data: bytes) -> bytes:
    padder = padding.PKCS7(128).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def test_tables():
    assert SBOX[0x00] == 0x63
    assert SBOX[0x53] == 0xED
    assert INV_SBOX[0x63] == 0x00
    assert MUL[2][0x80] == 0x1B
    assert MUL[3][0x57] == 0xF9
    assert MUL[14][0x01] == 14


@pytest.mark.parametrize("key_size,key_hex,expected", FIPS_197)
def test_fips_197_block(key_size, key_hex, expected):
    aes = AES(key_hex, key_size)
    assert aes.encrypt_block(PLAINTEXT).hex() == expected
    assert aes.decrypt_block(bytes.fromhex(expected)) == PLAINTEXT


def test_fips_197_appendix_b():
    aes = AES("2b7e151628aed2a6abf7158809cf4f3c", 128)
    ct = aes.encrypt_block(bytes.fromhex("3243f6a8885a308d313198a2e0370734"))
    assert ct.hex() == "3925841d02dc09fbdc118597196a0b32"


@pytest.mark.parametrize("key_size", [128, 192, 256])
@pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 33, 100])
def test_round_trip_matches_reference(key_size, length):
    key = secrets.token_bytes(key_size // 8)
    data = secrets.token_bytes(length)
    aes = AES(key, key_size)
    ciphertext = aes.encrypt(data)
    assert len(ciphertext) == (length // 16 + 1) * 16
    assert ciphertext == reference_ecb(key, data)
    assert aes.decrypt(ciphertext) == data


def test_text_hex_round_trip():
    aes = AES(generate_key(256, "system"))
    ct = aes.encrypt_to_hex("Nilai akhir: A")
    assert ct == ct.lower()
    assert aes.decrypt_from_hex(ct) == "Nilai akhir: A"


def test_ecb_repeats_identical_blocks():
    aes = AES(secrets.token_bytes(16), 128)
    ct = aes.encrypt(b"A" * 32)
    assert ct[:16] == ct[16:32]


def test_pkcs7():
    assert pad_pkcs7(b"") == bytes([16]) * 16
    assert pad_pkcs7(b"x" * 16)[-16:] == bytes([16]) * 16
    assert unpad_pkcs7(b"abc" + bytes([13]) * 13) == b"abc"
    with pytest.raises(InvalidPadding):
        unpad_pkcs7(b"x" * 12 + b"\x01\x02\x03\x04")
    with pytest.raises(InvalidPadding):
        unpad_pkcs7(b"x" * 15 + b"\x00")


def test_wrong_key_fails_or_differs():
    record_key = generate_key(256, "system")
    ct = AES(record_key).encrypt(b"secret transcript data")
    other = AES(generate_key(256, "system"))
    try:
        assert other.decrypt(ct) != b"secret transcript data"
    except InvalidPadding:
        pass


def test_invalid_keys():
    with pytest.raises(InvalidKeySize):
        AES(b"\x00" * 16, 256)
    with pytest.raises(InvalidKeySize):
        AES(b"\x00" * 20, 160)
    with pytest.raises(MalformedInput):
        AES("zz" * 32)
    with pytest.raises(InvalidPadding):
        AES(b"\x00" * 32).decrypt(b"\x00" * 15)


def test_generate_key_sources():
    assert len(generate_key(128, "system")) == 32
    assert len(generate_key(256, "bbs")) == 64
    with pytest.raises(ValueError):
        generate_key(256, "math-random")


def test_record_round_trip(sample_record):
    key = generate_key(256, "system")
    ct = encrypt_academic_record(sample_record, key)
    assert decrypt_academic_record(ct, key) == sample_record
