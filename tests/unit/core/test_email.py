"""
Tests for the email integration.

Tests:
- Template rendering and subjects
- Celery dispatcher hand-off
- SMTP transport failure modes
- The send task
"""

import smtplib
from unittest.mock import MagicMock, Mock, patch

import pytest

from core.integrations.email import CeleryMailDispatcher, EmailService, EmailTemplates


class TestEmailTemplates:
    """Test template rendering."""

    @pytest.fixture
    def templates(self):
        return EmailTemplates("https://decola.dev/")

    @pytest.mark.parametrize("name,context,subject", [
        ("application_feedback", {"job_title": "Monitoria"}, "Aplicação Recebida: Monitoria"),
        ("status_update", {"job_title": "Monitoria", "message": "ok", "job_id": 3}, "Status da Candidatura: Monitoria"),
        ("saved_job_reminder", {"job_title": "Monitoria", "job_id": 3}, "Lembrete: Vaga Monitoria"),
        ("welcome", {"user_name": "Bia"}, "Bem-vindo ao Decola Vagas!"),
        ("security_alert", {}, "Alerta de Segurança - Senha Alterada"),
    ])
    def test_subjects(self, templates, name, context, subject):
        rendered_subject, html = templates.render(name, **context)

        assert rendered_subject == subject
        assert html.strip().startswith("<html")

    def test_status_update_links_job(self, templates):
        _, html = templates.render(
            "status_update",
            job_title="Monitoria",
            message="Sua candidatura para a vaga Monitoria foi aprovado!",
            job_id=3,
        )

        assert "https://decola.dev/jobs/3" in html
        assert "foi aprovado!" in html

    def test_extra_context_ignored(self, templates):
        subject, _ = templates.render("welcome", user_name="Bia", unused="x")
        assert subject == "Bem-vindo ao Decola Vagas!"

    def test_unknown_template(self, templates):
        with pytest.raises(ValueError):
            templates.render("newsletter")

    def test_missing_context(self, templates):
        with pytest.raises(TypeError):
            templates.render("application_feedback")


class TestCeleryMailDispatcher:
    """Test the fire-and-forget hand-off."""

    def test_enqueues_without_retry(self):
        celery_app = Mock()
        CeleryMailDispatcher(celery_app).dispatch("welcome", "bia@uf.edu", user_name="Bia")

        celery_app.send_task.assert_called_once_with(
            "workers.tasks.emails.send_templated_email",
            kwargs={"template": "welcome", "to": "bia@uf.edu", "context": {"user_name": "Bia"}},
            retry=False,
        )

    def test_broker_failure_swallowed(self):
        celery_app = Mock()
        celery_app.send_task.side_effect = ConnectionError("broker down")

        # Must not raise
        CeleryMailDispatcher(celery_app).dispatch("security_alert", "bia@uf.edu")

        celery_app.send_task.assert_called_once()

    def test_unknown_template_not_enqueued(self):
        celery_app = Mock()
        CeleryMailDispatcher(celery_app).dispatch("newsletter", "bia@uf.edu")

        celery_app.send_task.assert_not_called()


class TestEmailService:
    """Test the SMTP transport."""

    def test_missing_credentials(self):
        service = EmailService("smtp.example.com", 587)

        with patch("core.integrations.email.smtplib.SMTP") as smtp:
            assert service.send_email("bia@uf.edu", "Assunto", "<p>oi</p>") is False
            smtp.assert_not_called()

    def test_sends_with_starttls(self):
        service = EmailService("smtp.example.com", 587, "bot@decola.dev", "app-password")

        with patch("core.integrations.email.smtplib.SMTP") as smtp:
            server = MagicMock()
            smtp.return_value.__enter__.return_value = server

            assert service.send_email("bia@uf.edu", "Assunto", "<p>oi</p>") is True

        smtp.assert_called_once_with("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot@decola.dev", "app-password")
        _, kwargs = server.send_message.call_args
        assert kwargs["to_addrs"] == ["bia@uf.edu"]
        assert kwargs["from_addr"] == "bot@decola.dev"

    def test_smtp_failure_returns_false(self):
        service = EmailService("smtp.example.com", 587, "bot@decola.dev", "app-password")

        with patch("core.integrations.email.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value.login.side_effect = (
                smtplib.SMTPAuthenticationError(535, b"bad credentials")
            )
            assert service.send_email("bia@uf.edu", "Assunto", "<p>oi</p>") is False

    def test_connection_failure_returns_false(self):
        service = EmailService("smtp.example.com", 587, "bot@decola.dev", "app-password")

        with patch("core.integrations.email.smtplib.SMTP", side_effect=OSError("unreachable")):
            assert service.send_email("bia@uf.edu", "Assunto", "<p>oi</p>") is False


class TestSendTemplatedEmailTask:
    """Test the worker task body."""

    def test_renders_and_sends(self):
        from workers.tasks import emails

        with patch.object(emails.EmailService, "send_email", return_value=True) as send:
            result = emails.send_templated_email(
                "application_feedback", "bia@uf.edu", {"job_title": "Monitoria"}
            )

        assert result == {"status": "sent", "template": "application_feedback"}
        to, subject = send.call_args.args[:2]
        assert to == "bia@uf.edu"
        assert subject == "Aplicação Recebida: Monitoria"

    def test_unknown_template_fails_without_sending(self):
        from workers.tasks import emails

        with patch.object(emails.EmailService, "send_email") as send:
            result = emails.send_templated_email("newsletter", "bia@uf.edu")

        assert result["status"] == "failed"
        send.assert_not_called()

    def test_smtp_failure_reported(self):
        from workers.tasks import emails

        with patch.object(emails.EmailService, "send_email", return_value=False):
            result = emails.send_templated_email("security_alert", "bia@uf.edu")

        assert result["status"] == "failed"
