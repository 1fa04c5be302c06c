# app/services/notify_email.py

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

import resend
from fastapi import Request

from app.core.config import Settings

log = logging.getLogger(__name__)

# ===================================================================
# BASE TEMPLATE
# ===================================================================

TPL_BASE = """
<div style="font-family:Arial,Helvetica,sans-serif;max-width:600px;margin:0 auto;padding:20px;color:#111827;">
  <h2 style="color:#333;margin:0 0 12px 0;">ITMS</h2>
  %s
  <p style="color:#999;font-size:12px;margin-top:30px;">
    This is an automated message from ITMS. If you did not request this, you can safely ignore this email.
  </p>
</div>
"""


def _format_link_section(link: str, link_text: str) -> str:
    """Primary button plus the full URL for copy-paste."""
    return f"""
    <div style="text-align:center;margin:30px 0;">
      <a href="{link}"
         style="background-color:#007bff;color:white;padding:12px 30px;text-decoration:none;
                border-radius:5px;display:inline-block;font-weight:bold;">
        {link_text}
      </a>
    </div>
    <p style="color:#999;font-size:12px;">
      If the button does not work, copy this link into your browser:<br/>
      <a href="{link}" style="color:#007bff;word-break:break-all;">{link}</a>
    </p>
    """


class EmailSender:
    """Outbound mail over SMTP or the Resend API.

    Delivery errors propagate to the caller. When no provider is configured
    the message is logged and skipped.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.provider = (settings.email_provider or "smtp").lower()

    # ---------------------------------------------------------------
    # transport
    # ---------------------------------------------------------------

    def _from_header(self) -> str:
        s = self.settings
        return f"{s.email_from_name} <{s.email_from_address}>" if s.email_from_name else s.email_from_address

    def _send_via_smtp(self, to_email: str, subject: str, html_content: str):
        s = self.settings
        if not s.smtp_host or not s.smtp_username or not s.smtp_password or not s.email_from_address:
            log.warning("SMTP is not configured; skipped %r to %s", subject, to_email)
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._from_header()
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        if s.smtp_use_ssl:
            server = smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=15)
        else:
            server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=15)
            server.starttls()
        try:
            server.login(s.smtp_username, s.smtp_password)
            server.send_message(msg)
        finally:
            server.quit()

    def _send_via_resend(self, to_email: str, subject: str, html_content: str):
        s = self.settings
        if not s.resend_api_key or not s.email_from_address:
            log.warning("Resend is not configured; skipped %r to %s", subject, to_email)
            return

        resend.api_key = s.resend_api_key
        resend.Emails.send({
            "from": self._from_header(),
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        })

    def send(self, to_email: str, subject: str, html_content: str):
        # EMAIL_REDIRECT_TO routes every message to one inbox while testing
        recipient = self.settings.email_redirect_to or to_email
        if self.provider == "resend":
            self._send_via_resend(recipient, subject, html_content)
        else:
            self._send_via_smtp(recipient, subject, html_content)
        log.info("sent %r to %s", subject, recipient)

    # ---------------------------------------------------------------
    # messages
    # ---------------------------------------------------------------

    def verification_link(self, token: str) -> str:
        base = (self.settings.public_base_url or "").rstrip("/")
        prefix = self.settings.api_prefix.rstrip("/")
        return f"{base}{prefix}/auth/verify?token={token}"

    def send_email_verification(self, to_email: str, token: str):
        link = self.verification_link(token)
        html_content = f"""
        <p style="color:#666;line-height:1.6;">Hello! Please verify your email address to finish signing up for ITMS.</p>
        <p style="color:#666;line-height:1.6;">Click the button below to complete verification.</p>
        {_format_link_section(link, "Verify email")}
        """
        self.send(to_email, "ITMS email verification", TPL_BASE % html_content)


def get_mailer(request: Request) -> EmailSender:
    return request.app.state.mailer
