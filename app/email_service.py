"""
Email Service
SMTP delivery and database template rendering
"""

import logging
import re
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

from sqlalchemy.orm import Session

from .config import SMTP_FROM, SMTP_HOST, SMTP_PASS, SMTP_PORT, SMTP_USE_SSL, SMTP_USER
from .email_templates import render_placeholders, text_to_html
from .models import EmailTemplate

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    return bool(SMTP_HOST and SMTP_USER and SMTP_PASS)


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> dict:
    """
    Send an email through the configured SMTP server.

    When SMTP is not configured the message is logged instead and the
    result carries success=False; SMTP failures raise.
    """
    if not smtp_configured():
        logger.warning(f"⚠️ SMTP not configured. Email to {to} NOT sent. Subject: {subject}")
        logger.info(f"--- Body ---\n{html}")
        return {"success": False, "message": "SMTP not configured"}

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = SMTP_FROM
    msg["To"] = to
    msg.attach(MIMEText(text or re.sub(r"<[^>]*>", "", html), "plain"))
    msg.attach(MIMEText(html, "html"))

    try:
        if SMTP_USE_SSL or SMTP_PORT == 465:
            context = ssl.create_default_context()
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context, timeout=30)
        else:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)
            server.starttls(context=ssl.create_default_context())

        server.login(SMTP_USER, SMTP_PASS)
        server.sendmail(SMTP_FROM.split("<")[-1].rstrip(">"), [to], msg.as_string())
        server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ SMTP send to {to} failed: {e}")
        raise

    logger.info(f"✅ Email sent to {to}: {subject}")
    return {"success": True}


def send_template_email(
    db: Session, template_name: str, to: str, context: dict[str, Any]
) -> Optional[dict]:
    """
    Render an active database template and send it.

    Returns None when the template is missing or inactive.
    """
    template = (
        db.query(EmailTemplate)
        .filter(EmailTemplate.name == template_name, EmailTemplate.is_active.is_(True))
        .first()
    )
    if not template:
        logger.info(f"Email template '{template_name}' missing or inactive - skipping")
        return None

    subject = render_placeholders(template.subject, context)
    body = render_placeholders(template.body, context)
    return send_email(to=to, subject=subject, html=text_to_html(body), text=body)
