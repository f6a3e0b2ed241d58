from dataclasses import replace

import pytest

from academic_vault.errors import (SigningError)
from academic_vault.models import (DigitalSignature, VerificationStatus)
from academic_vault.signature import (
    SIGNATURE_ALGORITHM, check_record_signature, create_signed_record, get_public_key_info, sign_academic_record,
    sign_data, sign_multiple_records, validate_key_pair, verification_status, verify_academic_record, verify_data,
    verify_multiple_records
)
from academic_vault.utils.sha3 import (hash_academic_record, to_hex)


@pytest.fixture(scope="module")
def signed(head_keys, sample_record):
    return sign_academic_record(sample_record, head_keys.private_key, head_keys.key_id)


def test_signature_fields(signed, head_keys, sample_record):
    assert signed.algorithm == SIGNATURE_ALGORITHM
    assert signed.key_id == head_keys.key_id
    assert signed.data_hash == to_hex(hash_academic_record(sample_record))
    assert int(signed.signature, 16) > 0


def test_valid_signature(signed, head_keys, sample_record):
    result = verify_academic_record(sample_record, signed, head_keys.public_key)
    assert result.is_valid
    assert result.message == "Signature verified successfully"
    assert result.key_id == head_keys.key_id


def test_modified_record(signed, head_keys, sample_record):
    tampered = replace(sample_record, ipk=4.0)
    result = verify_academic_record(tampered, signed, head_keys.public_key)
    assert not result.is_valid
    assert result.message == "Record has been modified - hash mismatch"


def test_forged_signature(signed, head_keys, sample_record):
    forged = replace(signed, signature=format(int(signed.signature, 16) ^ 1, "x"))
    result = verify_academic_record(sample_record, forged, head_keys.public_key)
    assert not result.is_valid
    assert result.message == "Invalid digital signature"


def test_wrong_public_key(signed, student_keys, sample_record):
    result = verify_academic_record(sample_record, signed, student_keys["public_key"])
    assert not result.is_valid


def test_malformed_public_key(signed, sample_record):
    result = verify_academic_record(sample_record, signed, "not a key")
    assert not result.is_valid
    assert result.message.startswith("Verification failed:")


def test_three_way_status(signed, head_keys, sample_record):
    assert verification_status(sample_record, signed, head_keys.public_key) == VerificationStatus.VERIFIED
    assert verification_status(sample_record, None, head_keys.public_key) == VerificationStatus.UNVERIFIED
    unsigned = replace(signed, signature="")
    assert verification_status(sample_record, unsigned, head_keys.public_key) == VerificationStatus.UNVERIFIED
    tampered = replace(sample_record, name="Someone Else")
    assert verification_status(tampered, signed, head_keys.public_key) == VerificationStatus.INVALID


def test_signature_dict_round_trip(signed):
    data = signed.to_dict()
    assert set(data) == {"signature", "algorithm", "keyId", "timestamp", "dataHash"}
    assert DigitalSignature.from_dict(data) == signed


def test_sign_with_malformed_key(sample_record):
    with pytest.raises(SigningError, match="Failed to sign academic record"):
        sign_academic_record(sample_record, "{}", "key_x")


def test_key_pair_validation(head_keys, student_keys):
    assert validate_key_pair(head_keys.public_key, head_keys.private_key)
    assert not validate_key_pair(student_keys["public_key"], head_keys.private_key)
    assert not validate_key_pair("garbage", head_keys.private_key)


def test_public_key_info(head_keys):
    info = get_public_key_info(head_keys.public_key)
    assert info["key_size"] in (1023, 1024)
    assert info["exponent"] == "65537"
    assert info["modulus"].endswith("...")
    assert len(info["modulus"]) == 35
    with pytest.raises(SigningError):
        get_public_key_info("{}")


def test_sign_and_verify_data(head_keys):
    signature = sign_data("berita acara sidang", head_keys.private_key, head_keys.key_id)
    assert verify_data("berita acara sidang", signature, head_keys.public_key).is_valid
    result = verify_data("berita acara sidang!", signature, head_keys.public_key)
    assert result.message == "Data has been modified - hash mismatch"


def test_batch_signing(head_keys, sample_record):
    other = replace(sample_record, nim="13522002", name="Siti Aminah")
    signed_records = sign_multiple_records([sample_record, other], head_keys.private_key, head_keys.key_id)
    signed_records[1]["record"] = replace(other, ipk=3.99)
    results = verify_multiple_records(signed_records, head_keys.public_key)
    assert [r["verification"].is_valid for r in results] == [True, False]
    single = create_signed_record(other, head_keys.private_key, head_keys.key_id)
    assert single["record"] is other
    assert single["signed_at"] >= single["signature"].timestamp


@pytest.mark.parametrize("field", ["data_hash", "signature"])
def test_missing_signature_fields_do_not_raise(signed, head_keys, sample_record, field):
    broken = replace(signed, **{field: None})
    result = verify_academic_record(sample_record, broken, head_keys.public_key)
    assert not result.is_valid
    assert result.message.startswith("Verification failed:")


def test_check_record_signature_states(signed, head_keys, sample_record):
    assert check_record_signature(sample_record, signed, head_keys.public_key) == (
        VerificationStatus.VERIFIED, "Signature verified successfully")
    assert check_record_signature(sample_record, None, head_keys.public_key) == (
        VerificationStatus.UNVERIFIED, "Record is not signed")
    tampered = replace(sample_record, ipk=1.0)
    assert check_record_signature(tampered, signed, head_keys.public_key) == (
        VerificationStatus.INVALID, "Record has been modified - hash mismatch")
