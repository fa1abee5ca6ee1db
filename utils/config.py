# =============================================================================
# utils/config.py - Configuration management
# =============================================================================

import os
from typing import Optional, List
from dotenv import load_dotenv


def _split(value: Optional[str], separator: str = ",") -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(separator) if item.strip()]


class Config:
    """Configuration management

    Built once at startup and handed to every component that needs it.
    """

    def __init__(self, env_file: Optional[str] = None):
        load_dotenv(env_file)

    # -- Active Directory --------------------------------------------------

    @property
    def ad_server(self) -> Optional[str]:
        return os.getenv("AD_SERVER")

    @property
    def ad_username(self) -> Optional[str]:
        return os.getenv("AD_USERNAME")

    @property
    def ad_password(self) -> Optional[str]:
        return os.getenv("AD_PASSWORD")

    @property
    def ad_use_ssl(self) -> bool:
        return os.getenv("AD_USE_SSL", "true").strip().lower() in ("1", "true", "yes")

    @property
    def ad_credential_file(self) -> Optional[str]:
        return os.getenv("AD_CREDENTIAL_FILE")

    @property
    def ad_credential_key(self) -> Optional[str]:
        return os.getenv("AD_CREDENTIAL_KEY")

    @property
    def base_dn(self) -> Optional[str]:
        return os.getenv("BASE_DN")

    @property
    def users_ou(self) -> Optional[str]:
        """Parent container the department OUs are created under"""
        return os.getenv("USERS_OU") or self.base_dn

    @property
    def baseline_groups(self) -> List[str]:
        # Group DNs contain commas, so the list is semicolon separated
        return _split(os.getenv("BASELINE_GROUPS"), ";")

    @property
    def email_domain(self) -> Optional[str]:
        return os.getenv("EMAIL_DOMAIN")

    @property
    def company_name(self) -> str:
        return os.getenv("COMPANY_NAME", "")

    # -- HR database -------------------------------------------------------

    @property
    def hr_database_url(self) -> Optional[str]:
        return os.getenv("HR_DATABASE_URL")

    @property
    def lookback_days(self) -> int:
        return int(os.getenv("LOOKBACK_DAYS", "1"))

    # -- Dedup cache -------------------------------------------------------

    @property
    def cache_file(self) -> str:
        return os.getenv("CACHE_FILE", "processed_employees.txt")

    @property
    def cache_expiry_days(self) -> int:
        return int(os.getenv("CACHE_EXPIRY_DAYS", "2"))

    # -- Mail --------------------------------------------------------------

    @property
    def smtp_server(self) -> Optional[str]:
        return os.getenv("SMTP_SERVER")

    @property
    def smtp_port(self) -> int:
        return int(os.getenv("SMTP_PORT", "25"))

    @property
    def mail_sender(self) -> Optional[str]:
        return os.getenv("MAIL_SENDER")

    @property
    def it_report_recipients(self) -> List[str]:
        return _split(os.getenv("IT_REPORT_RECIPIENTS"))

    @property
    def hr_report_recipients(self) -> List[str]:
        return _split(os.getenv("HR_REPORT_RECIPIENTS"))

    @property
    def clinical_report_recipients(self) -> List[str]:
        return _split(os.getenv("CLINICAL_REPORT_RECIPIENTS"))

    # -- Validation --------------------------------------------------------

    def get_missing_ad_vars(self) -> List[str]:
        """Get list of missing AD configuration variables"""
        has_secret = self.ad_password or (self.ad_credential_file and self.ad_credential_key)
        vars_and_names = [
            (self.ad_server, "AD_SERVER"),
            (self.ad_username, "AD_USERNAME"),
            (has_secret, "AD_PASSWORD or AD_CREDENTIAL_FILE/AD_CREDENTIAL_KEY"),
            (self.base_dn, "BASE_DN"),
            (self.email_domain, "EMAIL_DOMAIN"),
        ]
        return [name for var, name in vars_and_names if not var]

    def validate_hr_config(self) -> bool:
        return bool(self.hr_database_url)

    def get_missing_mail_vars(self) -> List[str]:
        """Get list of missing mail configuration variables"""
        vars_and_names = [
            (self.smtp_server, "SMTP_SERVER"),
            (self.mail_sender, "MAIL_SENDER"),
        ]
        return [name for var, name in vars_and_names if not var]
