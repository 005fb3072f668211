"""
Tests for password hashing and credential validation.
"""

import pytest

from app.core.security import (
    get_password_hash,
    normalize_email,
    validate_email,
    validate_password,
    verify_password,
)


class TestPasswordHashing:
    """Tests for bcrypt hashing helpers."""

    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("Str0ng!Passw0rd")
        assert hashed != "Str0ng!Passw0rd"
        assert hashed.startswith("$2")

    def test_verify_matching_password(self):
        hashed = get_password_hash("Str0ng!Passw0rd")
        assert verify_password("Str0ng!Passw0rd", hashed) is True

    def test_verify_wrong_password(self):
        hashed = get_password_hash("Str0ng!Passw0rd")
        assert verify_password("wrong", hashed) is False

    def test_same_password_hashes_differently(self):
        """Each hash uses a fresh salt."""
        assert get_password_hash("Str0ng!Passw0rd") != get_password_hash("Str0ng!Passw0rd")

    def test_malformed_hash_never_matches(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestEmailValidation:
    """Tests for email normalization and format checks."""

    @pytest.mark.parametrize("email", ["user@example.com", "a.b+c@sub.example.org"])
    def test_valid_emails(self, email):
        assert validate_email(email) is True

    @pytest.mark.parametrize("email", ["", "plain", "no@tld", "spaces in@example.com", "@example.com"])
    def test_invalid_emails(self, email):
        assert validate_email(email) is False

    def test_normalize_lowercases_and_strips(self):
        assert normalize_email("  User@Example.COM ") == "user@example.com"


class TestPasswordValidation:
    """Tests for password strength rules."""

    def test_strong_password_passes(self):
        result = validate_password("Str0ng!Passw0rd")
        assert result.is_valid is True
        assert result.errors == []
        assert result.score == 5

    def test_reports_every_failing_rule(self):
        result = validate_password("abc")
        assert result.is_valid is False
        assert "Password must be at least 8 characters long" in result.errors
        assert "Password must contain at least one uppercase letter" in result.errors
        assert "Password must contain at least one number" in result.errors
        assert "Password must contain at least one special character" in result.errors
        assert len(result.errors) == 4

    def test_missing_lowercase(self):
        result = validate_password("ABCDEFG1!")
        assert result.is_valid is False
        assert result.errors == ["Password must contain at least one lowercase letter"]
        assert "Add lowercase letters" in result.suggestions

    def test_common_password_rejected(self):
        result = validate_password("password")
        assert result.is_valid is False
        assert "This password is too common" in result.errors

    def test_score_never_negative(self):
        assert validate_password("admin").score >= 0
