import pytest

from academic_vault.models import (AcademicRecord, Course)
from academic_vault.utils.keygen import (generate_head_key_pair, generate_keypair)

# 1024-bit keys keep the suite fast while leaving room for 512-bit wrapped keys.
TEST_KEY_SIZE = 1024


@pytest.fixture(scope="session")
def head_keys():
    return generate_head_key_pair("INFORMATICS", TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def student_keys():
    return generate_keypair(TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def advisor_keys():
    return generate_keypair(TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def outsider_keys():
    return generate_keypair(TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def sample_record():
    courses = [
        Course(code="IF2211", name="Strategi Algoritma", credits=3, grade="A"),
        Course(code="IF2230", name="Sistem Operasi", credits=3, grade="AB"),
        Course(code="IF2240", name="Basis Data", credits=4, grade="B"),
        Course(code="IF2250", name="Rekayasa Perangkat Lunak", credits=3, grade="BC"),
    ]
    return AcademicRecord(nim="13522001", name="Budi Santoso", courses=courses, ipk=3.23)
