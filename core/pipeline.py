# =============================================================================
# core/pipeline.py - Per-person onboarding pipeline
# =============================================================================

import logging
from typing import List, Optional

from core.models import PersonRecord, ProcessingStats, ReportCollections, StepStatus
from processors.change_set import ChangeSetSelector
from processors.identity import IdentityDeriver
from processors.job_access import JobAccessResolver
from processors.provisioner import AccountProvisioner
from processors.reports import ReportClassifier
from utils.dedup_cache import DedupCache


class OnboardingPipeline:
    """Carries each selected person through derivation, access, provisioning and reporting

    People are handled strictly one at a time. Fatal errors (HR queries,
    identity derivation) propagate and end the run; directory sub-step
    failures are recorded on the person's outcome and the loop carries on.
    """

    def __init__(self, selector: ChangeSetSelector, deriver: IdentityDeriver,
                 resolver: JobAccessResolver, provisioner: AccountProvisioner,
                 cache: DedupCache, dry_run: bool = False):
        self.selector = selector
        self.deriver = deriver
        self.resolver = resolver
        self.provisioner = provisioner
        self.cache = cache
        self.dry_run = dry_run
        self.reports = ReportCollections()
        self.classifier = ReportClassifier(self.reports)
        self.stats = ProcessingStats()
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self, days: Optional[int] = None, employee_id: Optional[str] = None) -> ReportCollections:
        """Main processing workflow"""
        scope = f"employee {employee_id}" if employee_id else f"last {days} days"
        self.logger.info(f"Starting {self.__class__.__name__} ({scope})" + (" - DRY RUN" if self.dry_run else ""))

        try:
            people = self.selector.select(days=days, employee_id=employee_id)
            self.process_people(people)
        except Exception as e:
            self.logger.error(f"Processing failed: {e}")
            raise

        self.log_statistics(self.stats)
        return self.reports

    def process_people(self, people: List[PersonRecord]) -> None:
        self.stats.selected += len(people)
        for person in people:
            self.process_person(person)

    def process_person(self, person: PersonRecord) -> None:
        employee_id = person.employee_id
        self.logger.debug(f"{employee_id}: Selected")

        if self.cache.is_cached(employee_id):
            self.logger.info(f"{employee_id}: already processed - skipping")
            self.stats.skipped_cached += 1
            return
        self.logger.debug(f"{employee_id}: CacheChecked")

        identity = self.deriver.derive(person)
        self.logger.debug(f"{employee_id}: IdentityDerived ({identity.username})")

        access = self.resolver.resolve(person)
        self.logger.debug(f"{employee_id}: AccessResolved")

        outcome = self.provisioner.provision(person, identity)
        self.logger.debug(f"{employee_id}: Provisioned ({outcome.summary})")
        self._count_outcome(outcome)

        self.classifier.classify(person, identity, access, outcome)
        if not person.is_active:
            self.stats.terminated += 1
        self.logger.debug(f"{employee_id}: Reported")

        if outcome.has_account and not self.dry_run:
            self.cache.record_processed(employee_id)
            self.logger.debug(f"{employee_id}: Cached")
        elif not outcome.dry_run:
            self.logger.warning(f"{employee_id}: no account - not cached, will be retried next run")

    def _count_outcome(self, outcome) -> None:
        if outcome.dry_run:
            return
        if outcome.account_existed:
            self.stats.already_existed += 1
        elif not outcome.account_created:
            self.stats.failed += 1
        elif outcome.failures:
            self.stats.partial += 1
        else:
            self.stats.provisioned += 1

        for step in outcome.steps:
            if step.status == StepStatus.FAILED:
                name = "group" if step.step.startswith("group ") else step.step
                self.stats.step_failures[name] = self.stats.step_failures.get(name, 0) + 1

    def log_statistics(self, stats: ProcessingStats) -> None:
        """Log processing statistics"""
        self.logger.info(
            f"Run summary: selected={stats.selected}, skipped={stats.skipped_cached}, "
            f"provisioned={stats.provisioned}, partial={stats.partial}, "
            f"existing={stats.already_existed}, failed={stats.failed}, not_active={stats.terminated}"
        )
        if stats.step_failures:
            self.logger.info(f"Step failures: {stats.step_failures}")
        self.logger.info(f"Success rate: {stats.success_rate:.1f}% ({stats.processed} processed)")
