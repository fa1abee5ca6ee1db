# =============================================================================
# core/dispatch.py - Distribute the batch reports to their audiences
# =============================================================================

import logging
import smtplib
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from core.models import ReportCollections, ManagerReportRow
from utils.csv_utils import CSVHandler
from utils.mailer import ReportMailer

USER_REPORT = ("New Account Report", "Directory accounts created for new employees in this run.")
HR_REPORT = ("HR New Hire Report", "New employees with their assigned username and email address.")
MANAGER_REPORT = ("New Employee Account Details",
                  "Account details for your new team member(s). Initial passwords must be changed at first logon.")
ACCESS_REPORT = ("Epic Access Report",
                 "Templates, sub-templates and blueprints resolved from the job mapping, one row per artifact.")
TRAINING_REPORT = ("Epic Training Report", "Required training tracks per new employee.")


class ReportDispatcher:
    """Archives reports as CSV and mails each one to its audience"""

    def __init__(self, mailer: Optional[ReportMailer], it_recipients: List[str],
                 hr_recipients: List[str], clinical_recipients: List[str],
                 output_dir: Optional[str] = None):
        self.mailer = mailer
        self.it_recipients = it_recipients
        self.hr_recipients = hr_recipients
        self.clinical_recipients = clinical_recipients
        self.output_dir = Path(output_dir) if output_dir else None
        self.failures = 0
        self.logger = logging.getLogger(self.__class__.__name__)

    def dispatch(self, reports: ReportCollections) -> int:
        """Returns the number of mails that could not be sent"""
        if self.output_dir:
            self.archive(reports)

        if self.mailer is None:
            self.logger.info("Email disabled - reports not sent")
            return 0

        self._send(USER_REPORT, reports.user_rows, self.it_recipients)
        self._send(HR_REPORT, reports.hr_rows, self.hr_recipients)
        self._send(ACCESS_REPORT, reports.access_rows, self.clinical_recipients)
        self._send(TRAINING_REPORT, reports.training_rows, self.clinical_recipients)
        self.notify_supervisors(reports.manager_rows)
        return self.failures

    def archive(self, reports: ReportCollections) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        collections = {
            'user_report': reports.user_rows,
            'hr_report': reports.hr_rows,
            'manager_report': reports.manager_rows,
            'epic_access_report': reports.access_rows,
            'training_report': reports.training_rows,
        }
        for name, rows in collections.items():
            if rows:
                CSVHandler.write_rows(rows, str(self.output_dir / f"{name}_{stamp}.csv"))

    def notify_supervisors(self, rows: List[ManagerReportRow]) -> None:
        """Each supervisor receives only the rows for their own new hires"""
        by_supervisor: Dict[str, List[ManagerReportRow]] = defaultdict(list)
        for row in rows:
            if row.supervisor_email:
                by_supervisor[row.supervisor_email].append(row)
            else:
                self.logger.warning(f"No supervisor email for {row.employee_id} "
                                    f"(supervisor {row.supervisor_id or 'unknown'}) - notification not sent")

        for supervisor_email, supervisor_rows in by_supervisor.items():
            self._send(MANAGER_REPORT, supervisor_rows, [supervisor_email])

    def _send(self, report, rows, recipients: List[str]) -> None:
        name, description = report
        try:
            self.mailer.send_report(name, description, rows, recipients)
        except (smtplib.SMTPException, OSError) as e:
            self.failures += 1
            self.logger.error(f"Failed to send {name} to {', '.join(recipients)}: {e}")
