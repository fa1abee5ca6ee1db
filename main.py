# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import getpass
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.ad_client import ActiveDirectoryClient
from core.dispatch import ReportDispatcher
from core.hr_source import HRDataSource
from core.pipeline import OnboardingPipeline
from processors.change_set import ChangeSetSelector
from processors.identity import IdentityDeriver
from processors.job_access import JobAccessResolver
from processors.provisioner import AccountProvisioner
from utils.config import Config
from utils.credentials import resolve_service_password, write_credential_file
from utils.dedup_cache import DedupCache
from utils.mailer import ReportMailer


def setup_logging(level: str = "INFO") -> str:
    """Setup logging configuration with both console and file output"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    # Generate date-stamped filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"new_hire_provisioning_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Always log DEBUG to file
    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def build_pipeline(args, config: Config, hr_source: HRDataSource,
                   ad_client: Optional[ActiveDirectoryClient], cache: DedupCache) -> OnboardingPipeline:
    return OnboardingPipeline(
        selector=ChangeSetSelector(hr_source),
        deriver=IdentityDeriver(config.email_domain),
        resolver=JobAccessResolver(hr_source),
        provisioner=AccountProvisioner(
            ad_client, config.users_ou, config.baseline_groups,
            company=config.company_name, dry_run=args.dry_run
        ),
        cache=cache,
        dry_run=args.dry_run,
    )


def run_onboarding(args, config: Config) -> int:
    """Run one batch and dispatch its reports; returns the process exit code"""
    logger = logging.getLogger(__name__)

    hr_source = HRDataSource(config.hr_database_url)
    cache = DedupCache(args.cache_file or config.cache_file, config.cache_expiry_days,
                       read_only=args.dry_run)
    days = args.days if args.days is not None else config.lookback_days

    if args.dry_run:
        logger.info("Dry run - Active Directory, the cache file and email are left untouched")
        pipeline = build_pipeline(args, config, hr_source, None, cache)
        reports = pipeline.run(days=days, employee_id=args.employee_id)
    else:
        with ActiveDirectoryClient(
                config.ad_server, config.ad_username,
                resolve_service_password(config), config.base_dn,
                use_ssl=config.ad_use_ssl
        ) as ad_client:
            pipeline = build_pipeline(args, config, hr_source, ad_client, cache)
            reports = pipeline.run(days=days, employee_id=args.employee_id)

    mailer = None
    if not args.no_email and not args.dry_run:
        mailer = ReportMailer(config.smtp_server, config.smtp_port, config.mail_sender)

    dispatcher = ReportDispatcher(
        mailer,
        it_recipients=config.it_report_recipients,
        hr_recipients=config.hr_report_recipients,
        clinical_recipients=config.clinical_report_recipients,
        output_dir=args.output_dir,
    )
    mail_failures = dispatcher.dispatch(reports)
    if mail_failures:
        logger.warning(f"{mail_failures} report email(s) could not be sent")

    logger.info("Processing completed successfully!")
    logger.info(f"Final success rate: {pipeline.stats.success_rate:.1f}%")
    return 0


def store_credential(config: Config) -> int:
    """Prompt for the service account password and encrypt it into AD_CREDENTIAL_FILE"""
    logger = logging.getLogger(__name__)

    if not config.ad_credential_file or not config.ad_credential_key:
        logger.error("AD_CREDENTIAL_FILE and AD_CREDENTIAL_KEY must both be set to write a credential")
        return 1

    password = getpass.getpass(f"Password for {config.ad_username or 'the service account'}: ")
    if not password:
        logger.error("Empty password - credential file not written")
        return 1

    write_credential_file(config.ad_credential_file, config.ad_credential_key, password)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="New Hire Account Provisioning")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument('--days', type=int, help='Lookback window in days (default: LOOKBACK_DAYS)')
    scope.add_argument('--employee-id', help='Process a single employee ID')

    parser.add_argument('--cache-file', help='Processed employee cache file (default: CACHE_FILE)')
    parser.add_argument('--output-dir', help='Also write each report as CSV into this directory')
    parser.add_argument('--no-email', action='store_true', help='Do not send report emails')
    parser.add_argument('--dry-run', action='store_true',
                        help='Derive and report without touching Active Directory, the cache or email')
    parser.add_argument('--write-credential', action='store_true',
                        help='Prompt for the service account password, encrypt it into AD_CREDENTIAL_FILE and exit')
    parser.add_argument('--env-file', help='Path to a .env file')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def main():
    """Main CLI entry point"""
    args = build_parser().parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    # Load configuration
    config = Config(args.env_file)
    if args.write_credential:
        sys.exit(store_credential(config))

    missing_vars = config.get_missing_ad_vars()
    if not config.validate_hr_config():
        missing_vars.append("HR_DATABASE_URL")
    if not args.no_email and not args.dry_run:
        missing_vars.extend(config.get_missing_mail_vars())
    if missing_vars:
        logger.error(f"Missing required environment variables: {missing_vars}")
        sys.exit(1)

    try:
        sys.exit(run_onboarding(args, config))
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
