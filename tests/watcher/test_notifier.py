"""
Test cases for notification delivery.
"""

import smtplib
import ssl
from unittest.mock import patch

import pytest

from watcher.exceptions import NotificationError
from watcher.notifier import EmailNotifier, LogNotifier, render_html


@pytest.fixture
def email_notifier():
    """Create an email notifier for testing."""
    return EmailNotifier(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="watcher",
        smtp_password="secret",
        sender_email="watcher@example.com",
        recipient_email="ops@example.com"
    )


def part_text(part) -> str:
    return part.get_payload(decode=True).decode("utf-8")


class TestRenderHtml:
    """Test cases for the HTML rendering of bodies."""
    
    def test_newlines_become_breaks(self):
        """Line breaks are rendered as <br>."""
        assert render_html("one\ntwo") == "<p>one<br>two</p>"
    
    def test_markup_is_escaped(self):
        """Body text is escaped before rendering."""
        assert render_html("<b>&") == "<p>&lt;b&gt;&amp;</p>"


class TestEmailNotifier:
    """Test cases for EmailNotifier."""
    
    def test_build_message(self, email_notifier):
        """Messages carry a plain part and an HTML part."""
        message = email_notifier.build_message("Website Changed", "line one\nline two")
        
        assert message.get_content_type() == "multipart/alternative"
        assert message["Subject"] == "Website Changed"
        assert message["To"] == "ops@example.com"
        assert message["From"] == "Website Monitor <watcher@example.com>"
        
        plain, rich = message.get_payload()
        assert plain.get_content_type() == "text/plain"
        assert part_text(plain) == "line one\nline two"
        assert rich.get_content_type() == "text/html"
        assert part_text(rich) == "<p>line one<br>line two</p>"
    
    @pytest.mark.asyncio
    async def test_notify_uses_starttls(self, email_notifier):
        """Plain SMTP upgrades with STARTTLS when offered."""
        with patch("watcher.notifier.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value
            server.has_extn.return_value = True
            
            await email_notifier.notify("Subject", "Body")
        
        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("watcher", "secret")
        server.send_message.assert_called_once()
        sent = server.send_message.call_args[0][0]
        assert sent["Subject"] == "Subject"
    
    @pytest.mark.asyncio
    async def test_notify_skips_starttls_when_not_offered(self, email_notifier):
        """STARTTLS is only attempted when the server supports it."""
        with patch("watcher.notifier.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value
            server.has_extn.return_value = False
            
            await email_notifier.notify("Subject", "Body")
        
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()
    
    @pytest.mark.asyncio
    async def test_notify_with_implicit_tls(self):
        """SMTP_SECURE uses an SSL connection from the start."""
        notifier = EmailNotifier(
            smtp_host="smtp.example.com",
            smtp_port=465,
            smtp_user="watcher",
            smtp_password="secret",
            sender_email="watcher@example.com",
            recipient_email="ops@example.com",
            use_ssl=True,
            verify_tls=False
        )
        
        with patch("watcher.notifier.smtplib.SMTP_SSL") as mock_smtp_ssl:
            await notifier.notify("Subject", "Body")
        
        args, kwargs = mock_smtp_ssl.call_args
        assert args == ("smtp.example.com", 465)
        assert kwargs["context"].verify_mode == ssl.CERT_NONE
        mock_smtp_ssl.return_value.starttls.assert_not_called()
        mock_smtp_ssl.return_value.send_message.assert_called_once()
    
    @pytest.mark.asyncio
    async def test_smtp_failure_raises_notification_error(self, email_notifier):
        """SMTP errors surface as NotificationError."""
        with patch("watcher.notifier.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            
            with pytest.raises(NotificationError) as exc_info:
                await email_notifier.notify("Subject", "Body")
        
        assert exc_info.value.subject == "Subject"
    
    @pytest.mark.asyncio
    async def test_non_ascii_credentials_raise_notification_error(self, email_notifier):
        """Encoding failures during login surface as NotificationError."""
        with patch("watcher.notifier.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.login.side_effect = UnicodeEncodeError(
                'ascii', 'pässwörd', 1, 2, 'ordinal not in range(128)'
            )

            with pytest.raises(NotificationError) as exc_info:
                await email_notifier.notify("Subject", "Body")

        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)

    @pytest.mark.asyncio
    async def test_connection_failure_raises_notification_error(self, email_notifier):
        """Socket errors surface as NotificationError."""
        with patch("watcher.notifier.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(NotificationError):
                await email_notifier.notify("Subject", "Body")


class TestLogNotifier:
    """Test cases for LogNotifier."""
    
    @pytest.mark.asyncio
    async def test_notify_logs_warning(self):
        """Messages are written as a warning record."""
        notifier = LogNotifier()
        
        with patch.object(notifier, "logger") as mock_logger:
            await notifier.notify("Website Changed", "body text")
        
        mock_logger.warning.assert_called_once_with(
            "Watcher notification",
            subject="Website Changed",
            message="body text"
        )
