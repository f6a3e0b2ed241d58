import json
from dataclasses import replace
from itertools import combinations

import pytest

from academic_vault.core import (
    access_record, calculate_ipk, create_direct_access_keys, decrypt_direct_access_key, direct_access_file,
    group_access_file, group_decrypt, load_private_key, load_protected_record, load_record_file, prepare_record,
    protect_record, protect_record_file, protected_record_from_dict, protected_record_to_dict, save_protected_record
)
from academic_vault.errors import (InvalidRecord, RecordDecryptionError)
from academic_vault.models import (AcademicRecord, AccessType, Course, CryptoParams, VerificationStatus)
from academic_vault.utils.keystore import (create_keystore, store_key_in_keystore)

ADVISOR_POOL = ["adv_1", "adv_2", "adv_3", "adv_4", "adv_5"]
IDENTITIES = {"student": "stu_13522001", "advisor": "adv_1", "head": "head_if"}


@pytest.fixture(scope="module")
def public_keys(head_keys, student_keys, advisor_keys):
    return {
        "stu_13522001": student_keys["public_key"],
        "adv_1": advisor_keys["public_key"],
        "head_if": head_keys.public_key,
    }


@pytest.fixture(scope="module")
def protected(sample_record, public_keys, head_keys):
    return protect_record(sample_record, IDENTITIES, ADVISOR_POOL, public_keys, head_keys.private_key,
                          head_keys.key_id)


def direct_key_for(protected, user_id):
    return next((k for k in protected.direct_keys if k.user_id == user_id), None)

# -----------------------------
# Record Preparation
# -----------------------------
def test_calculate_ipk():
    assert calculate_ipk([Course("A1", "x", 5, "A"), Course("B1", "y", 3, "B")]) == 3.63
    assert calculate_ipk([]) == 0


def test_prepare_record(sample_record):
    record = prepare_record(sample_record.nim, sample_record.name,
                            [c.to_dict() for c in sample_record.courses])
    assert record == sample_record
    assert record.ipk == 3.23


@pytest.mark.parametrize("courses,message", [
    ([], "Missing required fields"),
    ([{"code": f"C{i}", "name": "n", "credits": 1, "grade": "A"} for i in range(13)], "Maximum 12 courses"),
    ([{"code": "C1", "name": "n", "credits": 0, "grade": "A"}], "Invalid credits"),
    ([{"code": "C1", "name": "n", "credits": 3, "grade": "A+"}], "Invalid grade"),
    ([{"code": f"C{i}", "name": "n", "credits": 5, "grade": "B"} for i in range(5)], "cannot exceed 24 SKS"),
])
def test_prepare_record_rejects(courses, message):
    with pytest.raises(InvalidRecord, match=message):
        prepare_record("13522001", "Budi Santoso", courses)


def test_prepare_record_requires_identity():
    with pytest.raises(InvalidRecord):
        prepare_record("", "Budi", [{"code": "C1", "name": "n", "credits": 3, "grade": "A"}])

# -----------------------------
# Direct Access Keys
# -----------------------------
def test_wrap_and_unwrap(student_keys, public_keys):
    keys = create_direct_access_keys("ab" * 32, ["stu_13522001"], public_keys, "rec_1")
    assert keys[0].record_id == "rec_1"
    assert decrypt_direct_access_key(keys[0].encrypted_key, student_keys["private_key"]) == "ab" * 32


def test_unwrap_with_wrong_key(outsider_keys, public_keys):
    keys = create_direct_access_keys("cd" * 32, ["adv_1"], public_keys)
    with pytest.raises(RecordDecryptionError):
        decrypt_direct_access_key(keys[0].encrypted_key, outsider_keys["private_key"])


def test_wrap_requires_public_key(public_keys):
    with pytest.raises(InvalidRecord):
        create_direct_access_keys("ab" * 32, ["unknown"], public_keys)

# -----------------------------
# Dual-Access Protocol
# -----------------------------
def test_protect_record_layout(protected, sample_record, head_keys):
    assert {k.user_id for k in protected.direct_keys} == set(IDENTITIES.values())
    assert [s.advisor_id for s in protected.shares] == ADVISOR_POOL
    assert len({s.prime for s in protected.shares}) == 1
    assert all(k.record_id == protected.record.id for k in protected.direct_keys)
    assert protected.record.student_id == "stu_13522001"
    assert protected.record.created_by == "adv_1"
    assert protected.record.signature == protected.signature.signature
    assert protected.signature.key_id == head_keys.key_id
    assert sample_record.name not in protected.record.encrypted_data


def test_protect_requires_identities(sample_record, public_keys, head_keys):
    with pytest.raises(InvalidRecord, match="head"):
        protect_record(sample_record, {"student": "stu_13522001", "advisor": "adv_1"}, ADVISOR_POOL,
                       public_keys, head_keys.private_key, head_keys.key_id)


@pytest.mark.parametrize("user_id,keys_name", [
    ("stu_13522001", "student_keys"), ("adv_1", "advisor_keys"), ("head_if", "head_keys"),
])
def test_direct_access_for_each_identity(request, protected, sample_record, head_keys, user_id, keys_name):
    keys = request.getfixturevalue(keys_name)
    private_key = keys.private_key if keys_name == "head_keys" else keys["private_key"]
    response = access_record(protected, direct_key_for(protected, user_id), private_key, head_keys.public_key)
    assert response.success
    assert response.access_type == AccessType.DIRECT
    assert response.message == "Direct access granted"
    assert response.data == sample_record
    assert response.verification_status == VerificationStatus.VERIFIED


def test_no_direct_key_requires_group(protected, head_keys):
    response = access_record(protected, direct_key_for(protected, "adv_3"), None, head_keys.public_key)
    assert not response.success
    assert response.access_type == AccessType.GROUP_REQUIRED
    assert response.required_share_count == 3
    assert response.message == "Need 3 advisor shares"


def test_wrong_private_key_is_denied(protected, outsider_keys, head_keys):
    response = access_record(protected, direct_key_for(protected, "stu_13522001"), outsider_keys["private_key"],
                             head_keys.public_key)
    assert not response.success
    assert response.access_type == AccessType.DENIED
    assert response.message == "Direct access failed"
    assert response.data is None


def test_group_access_with_threshold(protected, sample_record, head_keys):
    shares = [protected.shares[1], protected.shares[3], protected.shares[4]]
    response = group_decrypt(shares, shares[0].prime, protected.record.encrypted_data, protected.signature,
                             head_keys.public_key, requested_by="adv_2")
    assert response.success
    assert response.data == sample_record
    assert response.verification_status == VerificationStatus.VERIFIED
    assert response.message == "Signature verified successfully"


def test_group_access_below_threshold(protected, head_keys):
    response = group_decrypt(protected.shares[:2], protected.shares[0].prime, protected.record.encrypted_data,
                             protected.signature, head_keys.public_key)
    assert not response.success
    assert response.access_type == AccessType.DENIED
    assert response.message == "Need minimum 3 shares"


def test_group_access_duplicate_advisor(protected, head_keys):
    shares = protected.shares[:2] + [replace(protected.shares[2], advisor_id="adv_1")]
    response = group_decrypt(shares, shares[0].prime, protected.record.encrypted_data, protected.signature,
                             head_keys.public_key)
    assert response.access_type == AccessType.DENIED
    assert response.message == "Duplicate shares from the same advisor not allowed"


def test_group_access_tampered_ciphertext(protected, head_keys):
    data = protected.record.encrypted_data
    tampered = ("0" if data[0] != "0" else "1") + data[1:]
    response = group_decrypt(protected.shares[:3], protected.shares[0].prime, tampered, protected.signature,
                             head_keys.public_key)
    assert response.access_type == AccessType.DENIED
    assert response.message == "Group decryption failed"


def test_group_access_unsigned_and_forged(protected, head_keys):
    shares = protected.shares[:3]
    unsigned = group_decrypt(shares, shares[0].prime, protected.record.encrypted_data, None, head_keys.public_key)
    assert unsigned.success
    assert unsigned.verification_status == VerificationStatus.UNVERIFIED
    assert unsigned.message == "Record is not signed"

    forged = replace(protected.signature, data_hash="00" * 32)
    invalid = group_decrypt(shares, shares[0].prime, protected.record.encrypted_data, forged, head_keys.public_key)
    assert invalid.success
    assert invalid.verification_status == VerificationStatus.INVALID


def test_direct_access_with_invalid_signature(protected, student_keys, head_keys):
    forged = replace(protected, signature=replace(protected.signature, data_hash="11" * 32))
    response = access_record(forged, direct_key_for(forged, "stu_13522001"), student_keys["private_key"],
                             head_keys.public_key)
    assert response.success
    assert response.verification_status == VerificationStatus.INVALID


def test_single_course_record_both_paths(public_keys, head_keys, student_keys, advisor_keys):
    record = AcademicRecord(
        nim="13521001",
        name="John Doe",
        courses=[Course("IF2110", "Algoritma dan Struktur Data", 4, "A")],
        ipk=4.0,
    )
    assert prepare_record("13521001", "John Doe", record.courses) == record

    protected = protect_record(record, IDENTITIES, ADVISOR_POOL, public_keys, head_keys.private_key,
                               head_keys.key_id)
    private_keys = {
        "stu_13522001": student_keys["private_key"],
        "adv_1": advisor_keys["private_key"],
        "head_if": head_keys.private_key,
    }
    for user_id, private_key in private_keys.items():
        response = access_record(protected, direct_key_for(protected, user_id), private_key, head_keys.public_key)
        assert response.data == record
        assert response.verification_status == VerificationStatus.VERIFIED

    for subset in combinations(protected.shares, 3):
        response = group_decrypt(list(subset), subset[0].prime, protected.record.encrypted_data,
                                 protected.signature, head_keys.public_key)
        assert response.data == record
        assert response.verification_status == VerificationStatus.VERIFIED


def test_custom_threshold(sample_record, public_keys, head_keys):
    params = CryptoParams(shamir_threshold=2, key_source="system")
    protected = protect_record(sample_record, IDENTITIES, ADVISOR_POOL[:3], public_keys, head_keys.private_key,
                               head_keys.key_id, params=params)
    response = group_decrypt(protected.shares[:2], protected.shares[0].prime, protected.record.encrypted_data,
                             protected.signature, head_keys.public_key, params=params)
    assert response.success
    assert response.data == sample_record

# -----------------------------
# Bundles and Files
# -----------------------------
def test_bundle_round_trip(protected, tmp_path):
    data = protected_record_to_dict(protected)
    assert set(data) == {"record", "directKeys", "shares", "signature"}
    assert set(data["shares"][0]) == {"recordId", "advisorId", "x", "y", "prime"}
    assert protected_record_from_dict(json.loads(json.dumps(data))) == protected

    path = str(tmp_path / "bundle.json")
    save_protected_record(protected, path)
    assert load_protected_record(path) == protected


def test_malformed_bundle():
    with pytest.raises(InvalidRecord):
        protected_record_from_dict({"record": {}})


def write_json(path, data):
    with open(path, "w") as f:
        json.dump(data, f)
    return str(path)


def test_file_workflow(tmp_path, sample_record, head_keys, student_keys, advisor_keys):
    record_file = write_json(tmp_path / "record.json", {
        "nim": sample_record.nim,
        "name": sample_record.name,
        "courses": [c.to_dict() for c in sample_record.courses],
    })
    assert load_record_file(record_file) == sample_record

    head_pub = write_json(tmp_path / "head_pub.json", {"public_key": head_keys.public_key})
    pubfiles = {
        "stu_13522001": write_json(tmp_path / "student_pub.json", {"public_key": student_keys["public_key"]}),
        "adv_1": write_json(tmp_path / "advisor_pub.json", {"public_key": advisor_keys["public_key"]}),
        "head_if": head_pub,
    }
    bundle = protect_record_file(record_file, IDENTITIES, ADVISOR_POOL, pubfiles, head_keys.private_key,
                                 head_keys.key_id, str(tmp_path / "bundle.json"))

    keystore = str(tmp_path / "keystore.json")
    create_keystore("pass", keystore)
    store_key_in_keystore("pass", "student", student_keys, keystore)
    private_key = load_private_key(keystore=keystore, passphrase="pass", key_name="student")

    direct = direct_access_file(bundle, "stu_13522001", private_key, head_pub)
    assert direct.access_type == AccessType.DIRECT
    assert direct.data == sample_record

    missing = direct_access_file(bundle, "adv_4", private_key, head_pub)
    assert missing.access_type == AccessType.GROUP_REQUIRED

    group = group_access_file(bundle, ["adv_2", "adv_4", "adv_5"], head_pub)
    assert group.success
    assert group.verification_status == VerificationStatus.VERIFIED

    too_few = group_access_file(bundle, ["adv_2", "adv_4"], head_pub)
    assert too_few.access_type == AccessType.DENIED


def test_load_private_key_file(tmp_path, student_keys):
    privfile = write_json(tmp_path / "priv.json", student_keys)
    assert load_private_key(privfile=privfile) == student_keys["private_key"]
    with pytest.raises(ValueError):
        load_private_key()
