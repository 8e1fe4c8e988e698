"""Email integration: SMTP transport, pt-BR templates and the mail dispatcher."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, List, Optional, Union

from core.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    STARTTLS SMTP sender.

    ``send_email`` reports delivery as a bool instead of raising, so a
    worker can log a failed send and move on.
    """

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Decola Vagas",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailService":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_name=settings.mail_from_name,
        )

    @property
    def configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    def build_message(self, recipients: List[str], subject: str, body: str, html: bool) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content(body, subtype="html" if html else "plain", charset="utf-8")
        return message

    def send_email(
        self,
        to_email: Union[str, List[str]],
        subject: str,
        body: str,
        html: bool = True,
    ) -> bool:
        """
        Deliver one message to one or more recipients.

        Returns False without connecting when credentials are missing, and
        False on any SMTP or socket error.
        """
        if not self.configured:
            logger.error(f"SMTP credentials not configured; dropping mail '{subject}'")
            return False

        recipients = [to_email] if isinstance(to_email, str) else list(to_email)
        message = self.build_message(recipients, subject, body, html)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as smtp:
                smtp.starttls()
                smtp.login(self.smtp_user, self.smtp_password)
                smtp.send_message(message, from_addr=self.from_email, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery of '{subject}' failed: {e}")
            return False

        logger.info(f"Delivered '{subject}' to {len(recipients)} recipient(s)")
        return True


class EmailTemplates:
    """
    Transactional mail templates.

    Each template returns ``(subject, html)``. Templates are looked up by
    name so a queued task only has to carry the name and its context.
    """

    NAMES = (
        "application_feedback",
        "status_update",
        "saved_job_reminder",
        "welcome",
        "security_alert",
    )

    def __init__(self, app_url: str = "http://localhost:3000"):
        self.app_url = app_url.rstrip("/")

    def render(self, template: str, **context: Any) -> tuple[str, str]:
        """
        Render a template by name.

        Raises:
            ValueError: If the template does not exist
        """
        if template not in self.NAMES:
            raise ValueError(f"Unknown email template: {template}")
        return getattr(self, template)(**context)

    def _layout(self, title: str, content: str, action_url: Optional[str] = None, action_label: str = "") -> str:
        button = (
            f'<p style="margin-top:24px"><a href="{action_url}" '
            f'style="background:#2563eb;color:#ffffff;padding:12px 24px;border-radius:6px;'
            f'text-decoration:none;font-weight:600">{action_label}</a></p>'
            if action_url else ""
        )
        return f"""
            <html lang="pt-BR">
            <body style="background:#0f172a;color:#f8fafc;font-family:Arial,sans-serif">
                <div style="max-width:600px;margin:0 auto;padding:32px;background:#1e293b;border-radius:12px">
                    <h2>{title}</h2>
                    {content}
                    {button}
                    <p style="color:#94a3b8;margin-top:32px">Decola Vagas</p>
                </div>
            </body>
            </html>
        """

    def application_feedback(self, job_title: str, **_: Any) -> tuple[str, str]:
        """Confirmation sent after an application is created."""
        return (
            f"Aplicação Recebida: {job_title}",
            self._layout(
                "Candidatura recebida!",
                f"<p>Recebemos sua candidatura para a vaga <strong>{job_title}</strong>.</p>"
                "<p>Você será notificado quando houver novidades.</p>",
                f"{self.app_url}/dashboard/applications",
                "Acompanhar candidaturas",
            ),
        )

    def status_update(self, job_title: str, message: str, job_id: Optional[int] = None, **_: Any) -> tuple[str, str]:
        """Sent when a manager changes an application's status."""
        link = f"{self.app_url}/jobs/{job_id}" if job_id is not None else f"{self.app_url}/dashboard/applications"
        return (
            f"Status da Candidatura: {job_title}",
            self._layout("Status da Candidatura", f"<p>{message}</p>", link, "Ver vaga"),
        )

    def saved_job_reminder(self, job_title: str, job_id: Optional[int] = None, **_: Any) -> tuple[str, str]:
        """Daily reminder about a job saved a while ago and still open."""
        link = f"{self.app_url}/jobs/{job_id}" if job_id is not None else f"{self.app_url}/dashboard/saved"
        return (
            f"Lembrete: Vaga {job_title}",
            self._layout(
                "Não perca essa oportunidade",
                f"<p>Você salvou a vaga <strong>{job_title}</strong> e ela continua aberta.</p>"
                "<p>Que tal enviar sua candidatura?</p>",
                link,
                "Ver vaga",
            ),
        )

    def welcome(self, user_name: str, **_: Any) -> tuple[str, str]:
        """Welcome email sent after registration."""
        return (
            "Bem-vindo ao Decola Vagas!",
            self._layout(
                f"Olá, {user_name}!",
                "<p>Sua conta foi criada com sucesso.</p>"
                "<p>Complete seu perfil para se destacar nas candidaturas.</p>",
                f"{self.app_url}/dashboard/profile",
                "Completar perfil",
            ),
        )

    def security_alert(self, **_: Any) -> tuple[str, str]:
        """Sent after a password change."""
        return (
            "Alerta de Segurança - Senha Alterada",
            self._layout(
                "Sua senha foi alterada",
                "<p>A senha da sua conta foi alterada recentemente.</p>"
                "<p>Se não foi você, redefina sua senha imediatamente.</p>",
            ),
        )


class MailDispatcher:
    """
    Fire-and-forget mail hand-off used by request handlers.

    ``dispatch`` never raises and never waits for delivery.
    """

    def dispatch(self, template: str, to: str, **context: Any) -> None:
        raise NotImplementedError


class CeleryMailDispatcher(MailDispatcher):
    """Enqueues ``workers.tasks.emails.send_templated_email`` on the broker."""

    TASK_NAME = "workers.tasks.emails.send_templated_email"

    def __init__(self, celery_app):
        self.celery_app = celery_app

    def dispatch(self, template: str, to: str, **context: Any) -> None:
        if template not in EmailTemplates.NAMES:
            logger.error(f"Refusing to enqueue unknown email template: {template}")
            return
        try:
            self.celery_app.send_task(
                self.TASK_NAME,
                kwargs={"template": template, "to": to, "context": context},
                retry=False,
            )
            logger.debug(f"Enqueued '{template}' email")
        except Exception as e:
            # Broker down or misconfigured; the request that triggered the mail still succeeds.
            logger.error(f"Failed to enqueue '{template}' email: {e}")
