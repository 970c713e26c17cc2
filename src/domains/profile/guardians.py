# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Guardian derivation from structured parent information.

Application forms send ``parentInfo`` (father, mother and an optional other
guardian) instead of a guardian list. Each named person becomes one guardian:
the first token of the name is the first name, the remaining tokens form the
last name.
"""

from __future__ import annotations

from typing import Any

from src.domains.profile.errors import ValidationError
from src.models.profile import GuardianInput, ParentInfo

FATHER = "FATHER"
MOTHER = "MOTHER"
GUARDIAN = "GUARDIAN"


def split_name(full_name: str) -> tuple[str, str]:
    """Split a full name into first and last name.

    Args:
        full_name: Name as typed by the applicant.

    Returns:
        Tuple of (first_name, last_name). The last name may be empty.

    Example:
        >>> split_name("Ravi Kumar Sharma")
        ('Ravi', 'Kumar Sharma')
    """
    tokens = full_name.split(" ")
    first_name = tokens[0] or full_name
    last_name = " ".join(tokens[1:])
    return first_name, last_name


def _guardian(name: str, phone: str | None, relation: str, address: dict[str, Any] | None) -> GuardianInput:
    first_name, last_name = split_name(name)
    return GuardianInput(
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        email=None,
        relation=relation,
        address=address,
    )


def derive_guardians_from_parent_info(
    parent_info: ParentInfo | None,
    address: dict[str, Any] | None = None,
) -> list[GuardianInput]:
    """Synthesize up to three guardians from a parent info payload.

    Args:
        parent_info: Structured parent information, may be None.
        address: Student address, copied to every synthesized guardian.

    Returns:
        Guardians in father, mother, other-guardian order.
    """
    if parent_info is None:
        return []

    guardians: list[GuardianInput] = []
    if parent_info.father_name:
        guardians.append(_guardian(parent_info.father_name, parent_info.father_phone, FATHER, address))
    if parent_info.mother_name:
        guardians.append(_guardian(parent_info.mother_name, parent_info.mother_phone, MOTHER, address))
    if parent_info.guardian_name:
        guardians.append(
            _guardian(
                parent_info.guardian_name,
                parent_info.guardian_phone,
                parent_info.guardian_relation or GUARDIAN,
                address,
            )
        )
    return guardians


def guardian_upserts_from_parent_info(parent_info: ParentInfo | None) -> list[GuardianInput]:
    """Guardians to upsert on a student update.

    Upserts are matched to existing links by relation, so the other guardian
    is only included when its relation is named. No address is copied.
    """
    if parent_info is not None and not parent_info.guardian_relation:
        parent_info = parent_info.model_copy(update={"guardian_name": None, "guardian_phone": None})
    return derive_guardians_from_parent_info(parent_info)


def resolve_guardians(
    guardians: list[GuardianInput] | None,
    parent_info: ParentInfo | None,
    address: dict[str, Any] | None = None,
) -> list[GuardianInput]:
    """Resolve the guardian set for a new student.

    An explicit guardian list wins; otherwise guardians are derived from
    ``parent_info``.

    Raises:
        ValidationError: If no guardian results.
    """
    resolved = list(guardians) if guardians else derive_guardians_from_parent_info(parent_info, address)
    if not resolved:
        raise ValidationError("At least one guardian is required")
    return resolved
