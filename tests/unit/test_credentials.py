# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for generated usernames and temporary passwords."""

from unittest.mock import patch

from src.infrastructure.identity.credentials import (
    PASSWORD_ALPHABET,
    generate_temporary_password,
    generate_username,
)


class TestGenerateUsername:
    """Tests for username generation."""

    def test_lowercases_and_strips_non_alphanumerics(self) -> None:
        """Test that punctuation and case are normalized away."""
        username = generate_username("Ravi", "O'Brien-Sharma", "ADM/001")

        assert username[:-3] == "raviobriensharm"
        assert username[-3:].isdigit()
        assert len(username) == 18

    def test_short_names_are_not_padded(self) -> None:
        """Test that the name part is only cut, never padded."""
        username = generate_username("Al", "Li")

        assert username[:-3] == "alli"
        assert len(username) == 7

    def test_suffix_is_zero_padded(self) -> None:
        """Test that small random suffixes keep three digits."""
        with patch("src.infrastructure.identity.credentials.secrets.randbelow", return_value=7):
            username = generate_username("Kavita", "Rao", "EMP-7")

        assert username == "kavitaraoemp7007"

    def test_suffix_stays_below_modulus(self) -> None:
        """Test that the suffix is drawn below the configured bound."""
        with patch(
            "src.infrastructure.identity.credentials.secrets.randbelow", return_value=998
        ) as randbelow:
            username = generate_username("Asha", "Patil", suffix_modulus=999)

        randbelow.assert_called_once_with(999)
        assert username.endswith("998")

    def test_custom_base_length(self) -> None:
        """Test that the name part honours a custom length."""
        username = generate_username("Ravi", "Sharma", base_length=4)

        assert username[:-3] == "ravi"


class TestGenerateTemporaryPassword:
    """Tests for temporary password generation."""

    def test_default_length(self) -> None:
        """Test the default password length."""
        assert len(generate_temporary_password()) == 8

    def test_custom_length(self) -> None:
        """Test a configured password length."""
        assert len(generate_temporary_password(12)) == 12

    def test_uses_lowercase_alphanumerics_only(self) -> None:
        """Test the password alphabet."""
        password = generate_temporary_password(64)

        assert set(password) <= set(PASSWORD_ALPHABET)
