# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for guardian derivation."""

import pytest

from src.domains.profile.errors import ValidationError
from src.domains.profile.guardians import (
    derive_guardians_from_parent_info,
    guardian_upserts_from_parent_info,
    resolve_guardians,
    split_name,
)
from src.models.profile import GuardianInput, ParentInfo


class TestSplitName:
    """Tests for full name splitting."""

    def test_first_token_is_first_name(self) -> None:
        assert split_name("Ravi Kumar Sharma") == ("Ravi", "Kumar Sharma")

    def test_single_token_has_empty_last_name(self) -> None:
        assert split_name("Ravi") == ("Ravi", "")


class TestDeriveGuardians:
    """Tests for guardians synthesized from parent info."""

    def test_none_yields_no_guardians(self) -> None:
        assert derive_guardians_from_parent_info(None) == []

    def test_father_mother_guardian_order(self) -> None:
        """Test that guardians come out in father, mother, other order."""
        parent_info = ParentInfo(
            guardian_name="Meera Patil",
            mother_name="Sunita Sharma",
            father_name="Raj Kumar Sharma",
            father_phone="9822000001",
        )

        guardians = derive_guardians_from_parent_info(parent_info)

        assert [g.relation for g in guardians] == ["FATHER", "MOTHER", "GUARDIAN"]
        assert guardians[0].first_name == "Raj"
        assert guardians[0].last_name == "Kumar Sharma"
        assert guardians[0].phone == "9822000001"
        assert guardians[1].phone is None

    def test_custom_guardian_relation(self) -> None:
        parent_info = ParentInfo(guardian_name="Meera Patil", guardian_relation="AUNT")

        guardians = derive_guardians_from_parent_info(parent_info)

        assert len(guardians) == 1
        assert guardians[0].relation == "AUNT"

    def test_address_copied_and_email_left_empty(self) -> None:
        """Test that every synthesized guardian shares the student's address."""
        address = {"city": "Pune"}
        parent_info = ParentInfo(father_name="Raj Sharma", mother_name="Sunita Sharma")

        guardians = derive_guardians_from_parent_info(parent_info, address)

        assert all(g.address == address for g in guardians)
        assert all(g.email is None for g in guardians)


class TestGuardianUpserts:
    """Tests for guardians upserted on a student update."""

    def test_other_guardian_without_relation_is_skipped(self) -> None:
        parent_info = ParentInfo(father_name="Raj Sharma", guardian_name="Meera Patil", guardian_phone="9822000003")

        upserts = guardian_upserts_from_parent_info(parent_info)

        assert [g.relation for g in upserts] == ["FATHER"]

    def test_other_guardian_with_relation_is_upserted(self) -> None:
        parent_info = ParentInfo(guardian_name="Meera Patil", guardian_relation="AUNT")

        upserts = guardian_upserts_from_parent_info(parent_info)

        assert [(g.first_name, g.relation) for g in upserts] == [("Meera", "AUNT")]
        assert upserts[0].address is None

    def test_none_yields_no_upserts(self) -> None:
        assert guardian_upserts_from_parent_info(None) == []


class TestResolveGuardians:
    """Tests for choosing between explicit and derived guardians."""

    def test_explicit_list_wins(self) -> None:
        explicit = [GuardianInput(first_name="Anil", last_name="Desai", relation="UNCLE")]
        parent_info = ParentInfo(father_name="Raj Sharma")

        resolved = resolve_guardians(explicit, parent_info)

        assert [g.first_name for g in resolved] == ["Anil"]

    def test_falls_back_to_parent_info(self) -> None:
        resolved = resolve_guardians([], ParentInfo(mother_name="Sunita Sharma"), {"city": "Pune"})

        assert resolved[0].relation == "MOTHER"
        assert resolved[0].address == {"city": "Pune"}

    def test_no_guardian_raises(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            resolve_guardians(None, ParentInfo())

        assert exc_info.value.status_code == 400
