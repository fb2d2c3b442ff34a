"""
Report Mailer - delivers visit CSV reports by e-mail

Implements the report dispatch gateway over SMTP using aiosmtplib.
"""

import logging
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import aiosmtplib
from pydantic import BaseModel

from visitlog.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

REPORT_ATTACHMENT_NAME = "registre_visites.csv"
REPORT_HTML_BODY = "<p>Adjunt se troba el registre de visites actives.</p>"


class DispatchResult(BaseModel):
    """Outcome of a report delivery"""
    success: bool
    message: str
    error: Optional[str] = None


class ReportDispatchGateway(ABC):
    """Delivers a CSV payload to a list of recipients"""

    @abstractmethod
    async def dispatch(
        self,
        csv_payload: str,
        recipients: List[str],
        subject: str,
        sender_label: str,
    ) -> DispatchResult:
        """Send the report; never raises for delivery failures"""


class SMTPReportDispatcher(ReportDispatchGateway):
    """Async SMTP report delivery"""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.timeout = settings.smtp_timeout

    @property
    def is_configured(self) -> bool:
        """Check if SMTP delivery is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def build_message(
        self,
        csv_payload: str,
        recipients: List[str],
        subject: str,
        sender_label: str,
    ) -> MIMEMultipart:
        """Compose the report e-mail with the CSV attached"""
        message = MIMEMultipart()
        message["From"] = f'"{sender_label}" <{self.smtp_user}>'
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.attach(MIMEText(REPORT_HTML_BODY, "html", "utf-8"))

        attachment = MIMEText(csv_payload, "csv", "utf-8")
        attachment.add_header("Content-Disposition", "attachment", filename=REPORT_ATTACHMENT_NAME)
        message.attach(attachment)
        return message

    async def dispatch(
        self,
        csv_payload: str,
        recipients: List[str],
        subject: str,
        sender_label: str,
    ) -> DispatchResult:
        """
        Send a CSV report

        Args:
            csv_payload: CSV text produced by the exporter
            recipients: E-mail addresses
            subject: Subject line
            sender_label: Display name for the From header

        Returns:
            DispatchResult with success flag and message
        """
        if not csv_payload or not recipients:
            return DispatchResult(
                success=False,
                message="Missing data: csvData and recipients are required.",
            )

        if not self.is_configured:
            logger.warning("[Report] SMTP not configured, report not sent")
            return DispatchResult(success=False, message="Failed to send email.", error="SMTP not configured")

        message = self.build_message(csv_payload, recipients, subject, sender_label)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                use_tls=self.smtp_port == 465,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Report] Failed to send report to {len(recipients)} recipient(s): {e}")
            return DispatchResult(success=False, message="Failed to send email.", error=str(e))

        logger.info(f"[Report] Sent '{subject}' to {len(recipients)} recipient(s)")
        return DispatchResult(success=True, message="Email sent successfully!")
