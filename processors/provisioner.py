# =============================================================================
# processors/provisioner.py - Directory account provisioning
# =============================================================================

import logging
from typing import Any, Dict, List, Optional

from ldap3.core.exceptions import LDAPException
from ldap3.utils.dn import escape_rdn

from core.ad_client import ActiveDirectoryClient
from core.errors import DirectoryError
from core.models import PersonRecord, DerivedIdentity, ProvisioningOutcome, StepStatus

DIRECTORY_ERRORS = (DirectoryError, LDAPException)

STEP_OU = "organizational unit"
STEP_ACCOUNT = "account"
STEP_GUID = "object GUID"
STEP_MANAGER = "manager"


class AccountProvisioner:
    """Places a person in their department OU and creates their account

    Every sub-step is recorded in the ProvisioningOutcome instead of raised,
    so one person's directory trouble never stops the batch.
    """

    def __init__(self, ad_client: Optional[ActiveDirectoryClient], users_ou: str,
                 baseline_groups: Optional[List[str]] = None, company: str = "",
                 dry_run: bool = False):
        self.ad_client = ad_client
        self.users_ou = users_ou
        self.baseline_groups = baseline_groups or []
        self.company = company
        self.dry_run = dry_run
        self.logger = logging.getLogger(self.__class__.__name__)

    def ou_dn_for(self, department: str) -> str:
        if not department:
            return self.users_ou
        return f"OU={escape_rdn(department)},{self.users_ou}"

    def user_dn_for(self, person: PersonRecord, ou_dn: str) -> str:
        return f"CN={escape_rdn(person.full_name)},{ou_dn}"

    def build_attributes(self, person: PersonRecord, identity: DerivedIdentity) -> Dict[str, Any]:
        """Fixed profile attribute set; empty values are left off"""
        attributes = {
            'sAMAccountName': identity.username,
            'userPrincipalName': identity.email,
            'mail': identity.email,
            'givenName': person.first_name,
            'middleName': person.middle_name,
            'sn': person.last_name,
            'initials': identity.initials,
            'displayName': person.full_name,
            'employeeID': person.employee_id,
            'title': person.job_title,
            'department': person.department,
            'division': person.division,
            'physicalDeliveryOfficeName': person.mailstop,
            'l': person.location,
            'telephoneNumber': person.work_phone,
            'company': self.company,
            'description': person.job_title,
        }
        return {key: value for key, value in attributes.items() if value}

    def provision(self, person: PersonRecord, identity: DerivedIdentity) -> ProvisioningOutcome:
        outcome = ProvisioningOutcome(employee_id=person.employee_id)
        outcome.ou_dn = self.ou_dn_for(person.department)

        if self.dry_run:
            outcome.dry_run = True
            self.logger.info(f"Dry run - would create {identity.username} in {outcome.ou_dn}")
            return outcome

        self._ensure_ou(person, outcome)

        if not self._create_account(person, identity, outcome):
            return outcome

        identity.guid = outcome.guid
        self._assign_manager(person, outcome)
        self._assign_groups(outcome)

        if outcome.failures:
            self.logger.warning(f"Partially provisioned {identity.username}: {outcome.summary}")
        else:
            self.logger.info(f"Provisioned {identity.username} ({outcome.guid})")
        return outcome

    def _ensure_ou(self, person: PersonRecord, outcome: ProvisioningOutcome) -> None:
        """Create the department OU if absent; failures leave later steps to try anyway"""
        if outcome.ou_dn == self.users_ou:
            outcome.record(STEP_OU, StepStatus.SKIPPED, "no department, using default container")
            return

        try:
            if self.ad_client.ou_exists(outcome.ou_dn):
                outcome.record(STEP_OU, StepStatus.SKIPPED, "already exists")
                return
            self.ad_client.create_ou(outcome.ou_dn, description=person.department)
            outcome.record(STEP_OU, StepStatus.SUCCESS)
        except DIRECTORY_ERRORS as e:
            self.logger.error(f"Could not create OU {outcome.ou_dn}: {e}")
            outcome.record(STEP_OU, StepStatus.FAILED, str(e))

    def _create_account(self, person: PersonRecord, identity: DerivedIdentity,
                        outcome: ProvisioningOutcome) -> bool:
        """Create the account unless one already carries this employee ID"""
        try:
            existing = self.ad_client.find_user_by_employee_id(person.employee_id)
        except DIRECTORY_ERRORS as e:
            self.logger.error(f"Could not check for an existing account for {person.employee_id}: {e}")
            outcome.record(STEP_ACCOUNT, StepStatus.FAILED, f"existence check failed: {e}")
            return False

        if existing:
            outcome.account_existed = True
            outcome.account_dn = existing.get('dn', '')
            outcome.guid = existing.get('guid') or None
            identity.guid = outcome.guid
            outcome.record(STEP_ACCOUNT, StepStatus.SKIPPED, f"already exists as {existing.get('samaccountname')}")
            self.logger.warning(f"Account for {person.employee_id} already exists at {outcome.account_dn} - not recreated")
            return False

        user_dn = self.user_dn_for(person, outcome.ou_dn)
        try:
            self.ad_client.create_user(user_dn, self.build_attributes(person, identity), identity.password)
        except DIRECTORY_ERRORS as e:
            self.logger.error(f"Account creation failed for {person.employee_id}: {e}")
            outcome.record(STEP_ACCOUNT, StepStatus.FAILED, str(e))
            return False

        outcome.account_created = True
        outcome.account_dn = user_dn
        outcome.record(STEP_ACCOUNT, StepStatus.SUCCESS)

        try:
            outcome.guid = self.ad_client.get_object_guid(user_dn)
            outcome.record(STEP_GUID, StepStatus.SUCCESS)
        except DIRECTORY_ERRORS as e:
            self.logger.error(f"Could not read objectGUID for {user_dn}: {e}")
            outcome.record(STEP_GUID, StepStatus.FAILED, str(e))
        return True

    def _assign_manager(self, person: PersonRecord, outcome: ProvisioningOutcome) -> None:
        if not person.supervisor_id:
            outcome.record(STEP_MANAGER, StepStatus.SKIPPED, "no supervisor on record")
            return

        try:
            supervisor = self.ad_client.find_user_by_employee_id(person.supervisor_id)
            if not supervisor:
                self.logger.warning(f"Supervisor {person.supervisor_id} of {person.employee_id} not found in AD")
                outcome.record(STEP_MANAGER, StepStatus.FAILED, f"supervisor {person.supervisor_id} not found")
                return
            outcome.supervisor_email = supervisor.get('email', '')
            self.ad_client.set_manager(outcome.account_dn, supervisor['dn'])
            outcome.record(STEP_MANAGER, StepStatus.SUCCESS)
        except DIRECTORY_ERRORS as e:
            self.logger.warning(f"Could not set manager for {person.employee_id}: {e}")
            outcome.record(STEP_MANAGER, StepStatus.FAILED, str(e))

    def _assign_groups(self, outcome: ProvisioningOutcome) -> None:
        for group_dn in self.baseline_groups:
            step = f"group {group_dn}"
            try:
                self.ad_client.add_to_group(outcome.account_dn, group_dn)
                outcome.record(step, StepStatus.SUCCESS)
            except DIRECTORY_ERRORS as e:
                self.logger.warning(f"Could not add {outcome.account_dn} to {group_dn}: {e}")
                outcome.record(step, StepStatus.FAILED, str(e))
