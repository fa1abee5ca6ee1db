# =============================================================================
# utils/mailer.py - HTML report mail
# =============================================================================

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, List, Sequence

import pandas as pd

from utils.csv_utils import CSVHandler


def render_report_html(name: str, description: str, rows: Sequence[Any]) -> str:
    """Header banner followed by the rows as an HTML table"""
    frame = pd.DataFrame(CSVHandler.rows_to_dicts(rows))
    frame.columns = [str(c).replace('_', ' ').title() for c in frame.columns]
    table = frame.to_html(index=False, border=1, na_rep="", escape=True)
    return (
        "<html><body>"
        f"<h2>{html.escape(name)}</h2>"
        f"<p>{html.escape(description)}</p>"
        f"{table}"
        "</body></html>"
    )


class ReportMailer:
    """Sends report tables through an SMTP relay"""

    def __init__(self, smtp_server: str, smtp_port: int, sender: str):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.sender = sender
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_html(self, recipients: List[str], subject: str, body: str) -> None:
        message = MIMEMultipart('alternative')
        message['Subject'] = subject
        message['From'] = self.sender
        message['To'] = ', '.join(recipients)
        message.attach(MIMEText(body, 'html', 'utf-8'))

        with smtplib.SMTP(self.smtp_server, self.smtp_port) as smtp:
            smtp.sendmail(self.sender, recipients, message.as_string())
        self.logger.info(f"Sent '{subject}' to {', '.join(recipients)}")

    def send_report(self, name: str, description: str, rows: Sequence[Any],
                    recipients: List[str]) -> bool:
        """Send one report; returns False when nothing was sent"""
        if not rows:
            self.logger.info(f"No rows for {name} - email suppressed")
            return False
        if not recipients:
            self.logger.warning(f"No recipients configured for {name} - email not sent")
            return False

        self.send_html(recipients, name, render_report_html(name, description, rows))
        return True
