import json

import pytest

from academic_vault.utils.keystore import (
    create_keystore, list_keystore_keys, retrieve_key_from_keystore, store_key_in_keystore
)


@pytest.fixture
def keystore_file(tmp_path):
    path = str(tmp_path / "keystore.json")
    create_keystore("correct horse", path)
    return path


def test_store_and_retrieve(keystore_file, student_keys):
    store_key_in_keystore("correct horse", "student", student_keys, keystore_file)
    assert retrieve_key_from_keystore("correct horse", "student", keystore_file) == student_keys
    assert list_keystore_keys(keystore_file) == ["student"]


def test_file_holds_no_plaintext(keystore_file, student_keys):
    store_key_in_keystore("correct horse", "student", student_keys, keystore_file)
    with open(keystore_file) as f:
        raw = f.read()
    data = json.loads(raw)
    assert set(data) == {"salt", "keys"}
    assert json.loads(student_keys["private_key"])["d"] not in raw


def test_wrong_passphrase(keystore_file):
    store_key_in_keystore("correct horse", "k", {"a": 1}, keystore_file)
    with pytest.raises(ValueError, match="Wrong passphrase"):
        retrieve_key_from_keystore("battery staple", "k", keystore_file)


def test_missing_key(keystore_file):
    with pytest.raises(ValueError, match="not found"):
        retrieve_key_from_keystore("correct horse", "absent", keystore_file)
