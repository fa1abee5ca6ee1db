# =============================================================================
# processors/identity.py - Username, email, initials and password derivation
# =============================================================================

import logging
import re
import secrets
import string

from core.errors import IdentityDerivationError
from core.models import PersonRecord, DerivedIdentity

PASSWORD_LENGTH = 12
PASSWORD_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
LAST_NAME_CHARS = 5
ID_SUFFIX_CHARS = 2

_NON_ALPHA = re.compile(r'[^A-Za-z]')


def clean_name(value: str) -> str:
    """Strip everything except ASCII letters"""
    return _NON_ALPHA.sub('', value or '')


def derive_username(first_name: str, last_name: str, employee_id: str) -> str:
    """First initial + up to five letters of the last name + last two ID characters

    Not collision-free: two people with the same initial, surname prefix and
    ID suffix get the same username.
    """
    first = clean_name(first_name)
    last = clean_name(last_name)
    employee_id = (employee_id or '').strip()

    if not first:
        raise IdentityDerivationError(f"First name {first_name!r} has no letters to build a username from")
    if len(employee_id) < ID_SUFFIX_CHARS:
        raise IdentityDerivationError(f"Employee ID {employee_id!r} is too short to build a username from")

    return first[0] + last[:LAST_NAME_CHARS] + employee_id[-ID_SUFFIX_CHARS:]


def derive_email(contact_email: str, mailstop: str, domain: str, fallback: str = "") -> str:
    """Local part from the contact address, else the mailstop, else ``fallback``"""
    contact_email = (contact_email or '').strip()
    if contact_email:
        local_part = contact_email.split('@', 1)[0]
    else:
        local_part = (mailstop or '').strip() or fallback

    if not local_part:
        raise IdentityDerivationError("No contact email, mailstop or fallback to build an address from")
    return f"{local_part}@{domain}"


def derive_initials(first_name: str, middle_name: str, last_name: str) -> str:
    parts = [(first_name or '').strip(), (middle_name or '').strip(), (last_name or '').strip()]
    return ''.join(part[0] for part in parts if part)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Random alphanumeric password from the OS CSPRNG"""
    try:
        password = ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise IdentityDerivationError(f"Random source unavailable: {e}") from e

    if len(password) != length:
        raise IdentityDerivationError("Generated password has the wrong length")
    return password


class IdentityDeriver:
    """Computes DerivedIdentity for a person"""

    def __init__(self, email_domain: str):
        if not email_domain:
            raise ValueError("An email domain is required")
        self.email_domain = email_domain.lstrip('@')
        self.logger = logging.getLogger(self.__class__.__name__)

    def derive(self, person: PersonRecord) -> DerivedIdentity:
        username = derive_username(person.first_name, person.last_name, person.employee_id)
        # With neither a contact address nor a mailstop the username is used
        email = derive_email(person.contact_email, person.mailstop, self.email_domain, fallback=username)
        initials = derive_initials(person.first_name, person.middle_name, person.last_name)

        identity = DerivedIdentity(
            username=username,
            email=email,
            initials=initials,
            password=generate_password(),
        )
        self.logger.debug(f"Derived identity for {person.employee_id}: {username} <{email}> ({initials})")
        return identity
