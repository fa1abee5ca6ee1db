# =============================================================================
# core/models.py - Onboarding data models
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from enum import Enum


ACTIVE_STATUS = "Active"
TRAINING_SLOTS = 6


class StepStatus(Enum):
    """Outcome of a single provisioning sub-step"""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PersonRecord:
    """One employee record as read from the HR system of record"""
    employee_id: str
    first_name: str
    last_name: str
    middle_name: str = ""
    job_title: str = ""
    department: str = ""
    division: str = ""
    mailstop: str = ""
    supervisor_id: str = ""
    employment_status: str = ""
    contact_email: Optional[str] = None
    location: str = ""
    work_phone: str = ""
    created_date: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.employment_status == ACTIVE_STATUS


@dataclass
class DerivedIdentity:
    """Attributes computed from a PersonRecord, never persisted on their own"""
    username: str
    email: str
    initials: str
    password: str
    guid: Optional[str] = None


@dataclass(frozen=True)
class JobMapping:
    """A job-mapping row matched on (title, department)"""
    job_title: str
    department: str
    job_category: str
    job_role: str


@dataclass(frozen=True)
class AccessArtifact:
    """Template, sub-template or blueprint - an ID and a display name"""
    artifact_id: str
    name: str


@dataclass(frozen=True)
class TrainingTrack:
    """Required training course for a job category"""
    track_id: str
    name: str


@dataclass
class JobAccessMap:
    """Everything a person's job mapping resolves to"""
    mappings: List[JobMapping] = field(default_factory=list)
    templates: List[AccessArtifact] = field(default_factory=list)
    sub_templates: List[AccessArtifact] = field(default_factory=list)
    blueprints: List[AccessArtifact] = field(default_factory=list)
    training_tracks: List[TrainingTrack] = field(default_factory=list)

    @property
    def job_categories(self) -> List[str]:
        return list(dict.fromkeys(m.job_category for m in self.mappings if m.job_category))


@dataclass
class StepResult:
    """Result of one provisioning sub-step (OU, account, manager, group)"""
    step: str
    status: StepStatus
    reason: str = ""


@dataclass
class ProvisioningOutcome:
    """Aggregated per-person provisioning result"""
    employee_id: str
    ou_dn: str = ""
    account_dn: str = ""
    guid: Optional[str] = None
    account_created: bool = False
    account_existed: bool = False
    dry_run: bool = False
    supervisor_email: str = ""
    steps: List[StepResult] = field(default_factory=list)

    def record(self, step: str, status: StepStatus, reason: str = "") -> StepResult:
        result = StepResult(step, status, reason)
        self.steps.append(result)
        return result

    @property
    def has_account(self) -> bool:
        """True when the person ends up with exactly one directory account"""
        return self.account_created or self.account_existed

    @property
    def failures(self) -> List[StepResult]:
        return [s for s in self.steps if s.status == StepStatus.FAILED]

    @property
    def is_complete(self) -> bool:
        return self.has_account and not self.failures

    @property
    def summary(self) -> str:
        if self.dry_run:
            return "Dry run"
        if not self.has_account:
            reasons = "; ".join(f.reason for f in self.failures)
            return f"Account not created: {reasons}" if reasons else "Account not created"
        if self.account_existed:
            return "Account already existed"
        if self.failures:
            return "Partial: " + "; ".join(f"{f.step}: {f.reason}" for f in self.failures)
        return "Complete"


# -----------------------------------------------------------------------------
# Report rows
# -----------------------------------------------------------------------------

@dataclass
class UserReportRow:
    """IT report - one row per active person"""
    employee_id: str
    name: str
    username: str
    email: str
    title: str
    department: str
    status: str
    organizational_unit: str
    provisioning: str


@dataclass
class HRReportRow:
    """HR report - one row per active person"""
    employee_id: str
    name: str
    username: str
    email: str
    title: str
    department: str
    division: str
    supervisor_id: str


@dataclass
class ManagerReportRow:
    """Supervisor report - carries the one-time password"""
    employee_id: str
    name: str
    username: str
    email: str
    initial_password: str
    title: str
    department: str
    supervisor_id: str
    supervisor_email: str


@dataclass
class EpicAccessRow:
    """One row per template, sub-template or blueprint, keyed by GUID"""
    guid: str
    employee_id: str
    username: str
    name: str
    template_id: str = ""
    template_name: str = ""
    sub_template_id: str = ""
    sub_template_name: str = ""
    blueprint_id: str = ""
    blueprint_name: str = ""


@dataclass
class TrainingRow:
    """One row per person with up to six training-track slots"""
    guid: str
    employee_id: str
    username: str
    name: str
    job_category: str
    track_1: str = ""
    track_2: str = ""
    track_3: str = ""
    track_4: str = ""
    track_5: str = ""
    track_6: str = ""


@dataclass
class ReportCollections:
    """Batch-wide report collections, appended to once per person"""
    user_rows: List[UserReportRow] = field(default_factory=list)
    hr_rows: List[HRReportRow] = field(default_factory=list)
    manager_rows: List[ManagerReportRow] = field(default_factory=list)
    access_rows: List[EpicAccessRow] = field(default_factory=list)
    training_rows: List[TrainingRow] = field(default_factory=list)


@dataclass
class ProcessingStats:
    """Statistics for one run"""
    selected: int = 0
    skipped_cached: int = 0
    provisioned: int = 0
    partial: int = 0
    already_existed: int = 0
    failed: int = 0
    terminated: int = 0
    step_failures: Dict[str, int] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return self.selected - self.skipped_cached

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage"""
        if self.processed == 0:
            return 0.0
        return ((self.provisioned + self.partial + self.already_existed) / self.processed) * 100
