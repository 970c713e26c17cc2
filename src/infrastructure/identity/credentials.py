# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Username and temporary password generation.

Generated credentials are sent to the identity service and, afterwards, to
the profile owner by e-mail, so both follow fixed rules:

- username: lowercase alphanumerics of ``first + last + discriminator``,
  cut to 15 characters, followed by a zero-padded 3-digit random suffix.
- temporary password: 8 random characters from ``a-z0-9``.
"""

import re
import secrets
import string

PASSWORD_ALPHABET = string.ascii_lowercase + string.digits

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def generate_username(
    first_name: str,
    last_name: str,
    discriminator: str = "",
    base_length: int = 15,
    suffix_modulus: int = 999,
) -> str:
    """Derive a username from the profile's name.

    Args:
        first_name: Profile first name.
        last_name: Profile last name.
        discriminator: Admission or employee number.
        base_length: Maximum length of the name-derived part.
        suffix_modulus: Exclusive upper bound of the random suffix.

    Returns:
        Username such as ``ravisharmaadm00042``.
    """
    base = _NON_ALNUM.sub("", f"{first_name}{last_name}{discriminator}".lower())
    base = base[:base_length]
    suffix = str(secrets.randbelow(suffix_modulus)).zfill(3)
    return f"{base}{suffix}"


def generate_temporary_password(length: int = 8) -> str:
    """Generate a random lowercase alphanumeric password."""
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
