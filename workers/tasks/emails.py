"""Email sending tasks."""

import logging
from typing import Optional

from workers.celery_app import celery_app
from core.config import settings
from core.integrations.email import EmailService, EmailTemplates

logger = logging.getLogger(__name__)


@celery_app.task(name="workers.tasks.emails.send_templated_email")
def send_templated_email(
    template: str,
    to: str,
    context: Optional[dict] = None,
) -> dict:
    """Render a template and send it through SMTP.

    Failures are logged and reported in the result; the task is never
    retried.

    Args:
        template: Template name (see ``EmailTemplates.NAMES``)
        to: Recipient email address
        context: Template variables

    Returns:
        Dictionary with send status
    """
    try:
        subject, body = EmailTemplates(settings.app_url).render(template, **(context or {}))
    except (ValueError, TypeError) as e:
        logger.error(f"Could not render email template '{template}': {e}")
        return {"status": "failed", "template": template, "error": str(e)}

    sent = EmailService.from_settings(settings).send_email(to, subject, body, html=True)
    return {"status": "sent" if sent else "failed", "template": template}
