# =============================================================================
# processors/reports.py - Per-audience report rows
# =============================================================================

import logging

from core.models import (
    PersonRecord, DerivedIdentity, JobAccessMap, ProvisioningOutcome, ReportCollections,
    UserReportRow, HRReportRow, ManagerReportRow, EpicAccessRow, TrainingRow, TRAINING_SLOTS
)


class ReportClassifier:
    """Projects one enriched person into the batch report collections

    User, HR and manager rows are limited to active employees. Access and
    training rows are emitted for every resolved artifact regardless of status.
    """

    def __init__(self, reports: ReportCollections):
        self.reports = reports
        self.logger = logging.getLogger(self.__class__.__name__)

    def classify(self, person: PersonRecord, identity: DerivedIdentity,
                 access: JobAccessMap, outcome: ProvisioningOutcome) -> None:
        if person.is_active:
            self.reports.user_rows.append(self.user_row(person, identity, outcome))
            self.reports.hr_rows.append(self.hr_row(person, identity))
            self.reports.manager_rows.append(self.manager_row(person, identity, outcome))
        else:
            self.logger.info(f"Employee {person.employee_id} has status "
                             f"{person.employment_status or 'unknown'!r} - left out of user, HR and manager reports")

        self.reports.access_rows.extend(self.access_rows(person, identity, access))

        training = self.training_row(person, identity, access)
        if training:
            self.reports.training_rows.append(training)

    def user_row(self, person: PersonRecord, identity: DerivedIdentity,
                 outcome: ProvisioningOutcome) -> UserReportRow:
        return UserReportRow(
            employee_id=person.employee_id,
            name=person.full_name,
            username=identity.username,
            email=identity.email,
            title=person.job_title,
            department=person.department,
            status=person.employment_status,
            organizational_unit=outcome.ou_dn,
            provisioning=outcome.summary,
        )

    def hr_row(self, person: PersonRecord, identity: DerivedIdentity) -> HRReportRow:
        return HRReportRow(
            employee_id=person.employee_id,
            name=person.full_name,
            username=identity.username,
            email=identity.email,
            title=person.job_title,
            department=person.department,
            division=person.division,
            supervisor_id=person.supervisor_id,
        )

    def manager_row(self, person: PersonRecord, identity: DerivedIdentity,
                    outcome: ProvisioningOutcome) -> ManagerReportRow:
        # Only a password that was actually set on a new account is worth sending
        password = identity.password if outcome.account_created else ""
        return ManagerReportRow(
            employee_id=person.employee_id,
            name=person.full_name,
            username=identity.username,
            email=identity.email,
            initial_password=password,
            title=person.job_title,
            department=person.department,
            supervisor_id=person.supervisor_id,
            supervisor_email=outcome.supervisor_email,
        )

    def access_rows(self, person: PersonRecord, identity: DerivedIdentity, access: JobAccessMap):
        base = dict(guid=identity.guid or "", employee_id=person.employee_id,
                    username=identity.username, name=person.full_name)
        rows = [EpicAccessRow(**base, template_id=t.artifact_id, template_name=t.name)
                for t in access.templates]
        rows += [EpicAccessRow(**base, sub_template_id=s.artifact_id, sub_template_name=s.name)
                 for s in access.sub_templates]
        rows += [EpicAccessRow(**base, blueprint_id=b.artifact_id, blueprint_name=b.name)
                 for b in access.blueprints]
        return rows

    def training_row(self, person: PersonRecord, identity: DerivedIdentity, access: JobAccessMap):
        """One row with up to six track slots, or None when nothing was resolved"""
        if not access.training_tracks:
            return None

        tracks = access.training_tracks
        if len(tracks) > TRAINING_SLOTS:
            dropped = ", ".join(t.name for t in tracks[TRAINING_SLOTS:])
            self.logger.warning(f"{person.employee_id} has {len(tracks)} training tracks, "
                                f"only {TRAINING_SLOTS} fit the report - dropped: {dropped}")
            tracks = tracks[:TRAINING_SLOTS]

        slots = {f"track_{i}": track.name for i, track in enumerate(tracks, start=1)}
        return TrainingRow(
            guid=identity.guid or "",
            employee_id=person.employee_id,
            username=identity.username,
            name=person.full_name,
            job_category=", ".join(access.job_categories),
            **slots,
        )
