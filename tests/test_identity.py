from __future__ import annotations

import string
from unittest.mock import patch

import pytest

from conftest import make_person
from core.errors import IdentityDerivationError
from processors.identity import (
    IdentityDeriver, clean_name, derive_email, derive_initials, derive_username, generate_password
)


def test_username_strips_punctuation_from_names():
    assert derive_username("Mary-Ann", "O'Brien", "12345") == "MOBrie45"


@pytest.mark.parametrize("first,last", [
    ("Jean-Luc", "St. Pierre"),
    ("Zoë", "García-López"),
    ("  A1", "B 2 c"),
    ("Ann", "D'Angelo-Smith III"),
])
def test_username_is_alphanumeric(first, last):
    assert derive_username(first, last, "99817").isalnum()


@pytest.mark.parametrize("last,expected", [
    ("Li", "Li"),
    ("Smith", "Smith"),
    ("Johnson", "Johns"),
    ("Van-Der-Berg", "VanDe"),
])
def test_username_last_name_segment(last, expected):
    username = derive_username("Kim", last, "4410")
    assert username[1:-2] == expected


@pytest.mark.parametrize("employee_id", ["10", "555", "000123", "A9Z7"])
def test_username_ends_with_id_suffix(employee_id):
    assert derive_username("Pat", "Doe", employee_id)[-2:] == employee_id[-2:]


def test_username_with_no_letters_in_last_name():
    assert derive_username("Al", "'-", "3301") == "A01"


def test_username_requires_letters_in_first_name():
    with pytest.raises(IdentityDerivationError):
        derive_username("--", "Doe", "12345")


def test_username_requires_two_id_characters():
    with pytest.raises(IdentityDerivationError):
        derive_username("Pat", "Doe", "7")


def test_clean_name_keeps_only_letters():
    assert clean_name("O'Brien-Smith 2nd") == "OBrienSmithnd"
    assert clean_name(None) == ""


def test_email_uses_contact_local_part():
    assert derive_email("mary.obrien@gmail.com", "ICU-4", "example.org") == "mary.obrien@example.org"


def test_email_falls_back_to_mailstop():
    assert derive_email(None, "ICU4", "example.org") == "ICU4@example.org"
    assert derive_email("  ", "ICU4", "example.org") == "ICU4@example.org"


def test_email_falls_back_to_supplied_value_last():
    assert derive_email("", "", "example.org", fallback="MOBrie45") == "MOBrie45@example.org"


def test_email_without_any_local_part_fails():
    with pytest.raises(IdentityDerivationError):
        derive_email("", "", "example.org")


def test_initials_without_middle_name_are_two_characters():
    assert derive_initials("Mary", "", "Jones") == "MJ"


def test_initials_with_all_names_are_three_characters():
    assert derive_initials("Mary", "Beth", "Jones") == "MBJ"


def test_initials_with_only_first_name():
    assert derive_initials("Cher", "", "") == "C"


def test_password_shape():
    password = generate_password()
    assert len(password) == 12
    assert set(password) <= set(string.ascii_letters + string.digits)


def test_passwords_are_fresh_each_call():
    assert len({generate_password() for _ in range(20)}) == 20


def test_password_random_source_failure_is_fatal():
    with patch("processors.identity.secrets.choice", side_effect=OSError("no entropy")):
        with pytest.raises(IdentityDerivationError):
            generate_password()


def test_deriver_end_to_end_example():
    deriver = IdentityDeriver("example.org")
    identity = deriver.derive(make_person())

    assert identity.username == "MOBrie45"
    assert identity.email == "MOBrie45@example.org"
    assert identity.initials == "MO"
    assert len(identity.password) == 12
    assert identity.guid is None


def test_deriver_prefers_mailstop_over_username():
    deriver = IdentityDeriver("@example.org")
    identity = deriver.derive(make_person(mailstop="ICU4", middle_name="Beth"))

    assert identity.email == "ICU4@example.org"
    assert identity.initials == "MBO"


def test_deriver_requires_domain():
    with pytest.raises(ValueError):
        IdentityDeriver("")
