"""
Tests for the email service.

Tests cover:
- Verification, password reset and welcome emails
- Skipping delivery when Resend is not configured
- Error handling when the Resend API fails
"""

from unittest.mock import patch


def configure(mock_settings):
    mock_settings.RESEND_API_KEY = "test_api_key"
    mock_settings.FROM_EMAIL = "Blog <test@example.com>"
    mock_settings.FRONTEND_URL = "https://blog.example.com"
    mock_settings.PROJECT_NAME = "Blog CMS"
    mock_settings.EMAIL_VERIFICATION_EXPIRE_HOURS = 24
    mock_settings.PASSWORD_RESET_EXPIRE_MINUTES = 60


class TestEmailService:
    """Tests for the email service functions."""

    @patch("app.services.email.settings")
    @patch("app.services.email.resend")
    def test_send_verification_email(self, mock_resend, mock_settings):
        """The verification link carries the token."""
        from app.services.email import send_verification_email

        configure(mock_settings)
        mock_resend.Emails.send.return_value = {"id": "test_email_id"}

        result = send_verification_email("user@example.com", "abc123")

        assert result is True
        call_args = mock_resend.Emails.send.call_args[0][0]
        assert call_args["to"] == ["user@example.com"]
        assert call_args["from"] == "Blog <test@example.com>"
        assert "https://blog.example.com/verify-email?token=abc123" in call_args["html"]
        assert "24 hours" in call_args["html"]

    @patch("app.services.email.settings")
    @patch("app.services.email.resend")
    def test_send_password_reset_email(self, mock_resend, mock_settings):
        from app.services.email import send_password_reset_email

        configure(mock_settings)
        mock_resend.Emails.send.return_value = {"id": "test_email_id"}

        result = send_password_reset_email("user@example.com", "reset-token")

        assert result is True
        call_args = mock_resend.Emails.send.call_args[0][0]
        assert "Reset" in call_args["subject"]
        assert "https://blog.example.com/reset-password?token=reset-token" in call_args["html"]

    @patch("app.services.email.settings")
    @patch("app.services.email.resend")
    def test_send_welcome_email_with_default_name(self, mock_resend, mock_settings):
        """Welcome email uses the email prefix when no name is given."""
        from app.services.email import send_welcome_email

        configure(mock_settings)
        mock_resend.Emails.send.return_value = {"id": "test_email_id"}

        result = send_welcome_email("johndoe@example.com")

        assert result is True
        call_args = mock_resend.Emails.send.call_args[0][0]
        assert "Welcome" in call_args["subject"]
        assert "johndoe" in call_args["html"]

    @patch("app.services.email.settings")
    @patch("app.services.email.resend")
    def test_no_api_key_skips_sending(self, mock_resend, mock_settings):
        from app.services.email import send_verification_email

        mock_settings.RESEND_API_KEY = ""

        assert send_verification_email("user@example.com", "abc") is False
        mock_resend.Emails.send.assert_not_called()

    @patch("app.services.email.settings")
    @patch("app.services.email.resend")
    def test_exception_handling(self, mock_resend, mock_settings):
        """A Resend failure is reported as False, never raised."""
        from app.services.email import send_password_reset_email

        configure(mock_settings)
        mock_resend.Emails.send.side_effect = Exception("API Error")

        assert send_password_reset_email("user@example.com", "t") is False


class TestRegistrationEmail:
    """Registration queues a verification email for non-admin accounts."""

    def test_second_registrant_gets_verification_email(self, client, admin):
        with patch("app.api.auth.send_verification_email", return_value=True) as mock_send:
            response = client.post(
                "/api/auth/register",
                json={"email": "new@example.com", "password": "Str0ng!Passw0rd", "name": "New"},
            )

        assert response.status_code == 201
        mock_send.assert_called_once()
        assert mock_send.call_args[0][0] == "new@example.com"

    def test_email_failure_does_not_fail_registration(self, client, admin):
        with patch("app.api.auth.send_verification_email", side_effect=RuntimeError("boom")):
            response = client.post(
                "/api/auth/register",
                json={"email": "new@example.com", "password": "Str0ng!Passw0rd", "name": "New"},
            )

        assert response.status_code == 201
