"""
Email service for centralized email sending.

This module provides the EmailService class for sending emails with:
- Django template rendering for HTML and plain text
- Raw (pre-rendered) content
- BCC fan-out for one-to-many announcements

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT
    - DEFAULT_FROM_EMAIL

Usage:
    from toolkit.services.email import EmailService

    EmailService.send(
        to="user@example.com",
        subject="Your Exchange Order Confirmed",
        template_name="emails/exchange_confirmation",
        context={"name": "Rider", "product_name": "Bamboo bottle"},
    )

    EmailService.send_bcc(
        recipients=["a@example.com", "b@example.com"],
        subject="Platform maintenance",
        template_name="emails/broadcast_announcement",
        context={"title": "Platform maintenance", "content": "..."},
    )

Note:
    Every method returns False instead of raising on transport failure.
    Callers decide whether a failed send matters.
"""

from __future__ import annotations

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from toolkit.helpers import mask_email

logger = logging.getLogger(__name__)


class EmailService:
    """
    Centralized email sending with template support.

    Templates are looked up as `{template_name}.html` and
    `{template_name}.txt`. A missing text template falls back to the
    HTML with tags stripped.
    """

    @staticmethod
    def render(template_name: str, context: dict) -> tuple[str, str | None]:
        """
        Render the text and HTML bodies for a template.

        Returns:
            (text_body, html_body_or_None)

        Raises:
            TemplateDoesNotExist: If neither variant exists
        """
        try:
            html_content = render_to_string(f"{template_name}.html", context)
        except TemplateDoesNotExist:
            html_content = None

        try:
            text_content = render_to_string(f"{template_name}.txt", context)
        except TemplateDoesNotExist:
            if html_content is None:
                raise
            text_content = strip_tags(html_content)

        return text_content, html_content

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict,
        from_email: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """
        Send email using a template.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Template path without extension
            context: Template context variables
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)
            reply_to: Reply-to address

        Returns:
            True if email was handed to the backend successfully
        """
        text_content, html_content = EmailService.render(template_name, context)
        return EmailService.send_raw(
            to=to,
            subject=subject,
            body_text=text_content,
            body_html=html_content,
            from_email=from_email,
            reply_to=reply_to,
        )

    @staticmethod
    def send_raw(
        to: str | list[str],
        subject: str,
        body_text: str,
        body_html: str | None = None,
        from_email: str | None = None,
        reply_to: str | None = None,
        bcc: list[str] | None = None,
    ) -> bool:
        """
        Send email with pre-rendered content.

        Returns:
            True if email was handed to the backend successfully
        """
        if isinstance(to, str):
            to = [to]

        email = EmailMultiAlternatives(
            subject=subject,
            body=body_text,
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=to,
            bcc=bcc,
            reply_to=[reply_to] if reply_to else None,
        )
        if body_html:
            email.attach_alternative(body_html, "text/html")

        try:
            email.send(fail_silently=False)
        except (SMTPException, OSError) as e:
            logger.error(
                f"Failed to send email to {', '.join(mask_email(t) for t in to)}: {e}"
            )
            return False

        logger.info(
            f"Email sent to {len(to)} recipient(s) + {len(bcc or [])} bcc: {subject}"
        )
        return True

    @staticmethod
    def send_bcc(
        recipients: list[str],
        subject: str,
        template_name: str,
        context: dict,
    ) -> bool:
        """
        Send one message to many people without exposing their addresses.

        The visible recipient is DEFAULT_FROM_EMAIL; everyone else is BCC'd.

        Returns:
            False if `recipients` is empty or the send failed
        """
        if not recipients:
            logger.warning(f"BCC send skipped, no recipients: {subject}")
            return False

        text_content, html_content = EmailService.render(template_name, context)
        return EmailService.send_raw(
            to=settings.DEFAULT_FROM_EMAIL,
            subject=subject,
            body_text=text_content,
            body_html=html_content,
            bcc=list(recipients),
        )
