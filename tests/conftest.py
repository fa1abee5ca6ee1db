from __future__ import annotations

from datetime import datetime
from typing import Dict, List

import pytest

from core.errors import DirectoryError
from core.models import AccessArtifact, JobMapping, PersonRecord, ReportCollections, TrainingTrack


def make_person(**overrides) -> PersonRecord:
    values = dict(
        employee_id="12345",
        first_name="Mary-Ann",
        middle_name="",
        last_name="O'Brien",
        job_title="Nurse",
        department="ICU",
        division="Nursing",
        mailstop="",
        supervisor_id="900",
        employment_status="Active",
        contact_email=None,
    )
    values.update(overrides)
    return PersonRecord(**values)


def rows_for(reports: ReportCollections, employee_id: str) -> int:
    """Count of rows in every collection belonging to one employee"""
    collections = [reports.user_rows, reports.hr_rows, reports.manager_rows,
                   reports.access_rows, reports.training_rows]
    return sum(1 for rows in collections for row in rows if row.employee_id == employee_id)


class FakeHRSource:
    """In-memory stand-in for HRDataSource"""

    def __init__(self, people: List[PersonRecord] = None):
        self.people = list(people or [])
        self.mappings: Dict[tuple, List[JobMapping]] = {}
        self.templates: Dict[tuple, List[AccessArtifact]] = {}
        self.sub_templates: Dict[tuple, List[AccessArtifact]] = {}
        self.blueprints: Dict[tuple, List[AccessArtifact]] = {}
        self.training: Dict[str, List[TrainingTrack]] = {}
        self.since_calls: List[datetime] = []

    def get_people_created_since(self, since):
        self.since_calls.append(since)
        return list(self.people)

    def get_person(self, employee_id):
        return next((p for p in self.people if p.employee_id == employee_id), None)

    def get_job_mappings(self, job_title, department):
        return list(self.mappings.get((job_title, department), []))

    def get_templates(self, job_title, job_role):
        return list(self.templates.get((job_title, job_role), []))

    def get_sub_templates(self, job_title, job_role):
        return list(self.sub_templates.get((job_title, job_role), []))

    def get_blueprints(self, job_title, job_role):
        return list(self.blueprints.get((job_title, job_role), []))

    def get_training_tracks(self, job_category):
        return list(self.training.get(job_category, []))


class FakeDirectory:
    """Records every directory call the provisioner makes"""

    def __init__(self, existing_ous=(), users=None):
        self.ous = set(existing_ous)
        self.users = dict(users or {})  # employee_id -> entry dict
        self.calls: List[tuple] = []
        self.fail_groups = set()
        self.fail_manager = False

    def ou_exists(self, ou_dn):
        self.calls.append(("ou_exists", ou_dn))
        return ou_dn in self.ous

    def create_ou(self, ou_dn, description=""):
        self.calls.append(("create_ou", ou_dn))
        self.ous.add(ou_dn)

    def find_user_by_employee_id(self, employee_id):
        self.calls.append(("find_user", employee_id))
        return dict(self.users.get(employee_id, {}))

    def create_user(self, user_dn, attributes, password):
        self.calls.append(("create_user", user_dn))
        self.users[attributes['employeeID']] = {
            'dn': user_dn,
            'samaccountname': attributes['sAMAccountName'],
            'email': attributes.get('mail', ''),
            'guid': f"{{guid-{attributes['employeeID']}}}",
        }

    def get_object_guid(self, dn):
        self.calls.append(("get_guid", dn))
        return next(u['guid'] for u in self.users.values() if u['dn'] == dn)

    def set_manager(self, user_dn, manager_dn):
        self.calls.append(("set_manager", user_dn, manager_dn))
        if self.fail_manager:
            raise DirectoryError("Set manager failed", {'description': 'insufficientAccessRights'})

    def add_to_group(self, user_dn, group_dn):
        self.calls.append(("add_to_group", user_dn, group_dn))
        if group_dn in self.fail_groups:
            raise DirectoryError(f"Add to group {group_dn} failed", {'description': 'noSuchObject'})

    @property
    def provisioning_calls(self):
        return [c for c in self.calls if c[0] in ("create_ou", "create_user", "set_manager", "add_to_group")]


@pytest.fixture
def person():
    return make_person()


@pytest.fixture
def supervisor_entry():
    return {'dn': 'CN=Sam Boss,OU=ICU,OU=Staff,DC=example,DC=org', 'samaccountname': 'SBoss00',
            'email': 'sam.boss@example.org', 'guid': '{boss-guid}'}
