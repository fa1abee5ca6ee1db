# =============================================================================
# core/ad_client.py - Active Directory provisioning client
# =============================================================================

import logging
from typing import Dict, Any, Optional
from ldap3 import Server, Connection, ALL, BASE, SUBTREE, MODIFY_REPLACE
from ldap3.core.results import RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT
from ldap3.utils.conv import escape_filter_chars

from core.errors import DirectoryError

# userAccountControl flags
NORMAL_ACCOUNT = 0x200
ACCOUNTDISABLE = 0x2

USER_OBJECT_CLASSES = ['top', 'person', 'organizationalPerson', 'user']


class ActiveDirectoryClient:
    """Active Directory client for OU, account and group provisioning"""

    def __init__(self, server_url: str, username: str, password: str, base_dn: str,
                 use_ssl: bool = True):
        self.server_url = server_url
        self.username = username
        self.password = password
        self.base_dn = base_dn
        self.use_ssl = use_ssl
        self.connection: Optional[Connection] = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()

    def connect(self) -> bool:
        """Establish connection to Active Directory"""
        try:
            server = Server(self.server_url, use_ssl=self.use_ssl, get_info=ALL)
            self.connection = Connection(
                server,
                user=self.username,
                password=self.password,
                auto_bind=True
            )
            self.logger.info("Successfully connected to Active Directory")
            return True
        except Exception as e:
            self.logger.error(f"Failed to connect to AD: {e}")
            raise DirectoryError(f"Failed to connect to AD: {e}")

    def disconnect(self) -> None:
        """Close Active Directory connection"""
        if self.connection:
            self.connection.unbind()
            self.connection = None
            self.logger.info("Disconnected from Active Directory")

    def _require_connection(self) -> Connection:
        if not self.connection:
            raise ConnectionError("Not connected to Active Directory")
        return self.connection

    def _failure(self, action: str, dn: str) -> DirectoryError:
        result = dict(self.connection.result or {}) if self.connection else {}
        description = result.get('description', 'unknown error')
        message = result.get('message', '')
        self.logger.debug(f"{action} failed for {dn}: {result}")
        return DirectoryError(f"{action} failed for {dn}: {description} {message}".strip(), result)

    # -- Organizational units ----------------------------------------------

    def ou_exists(self, ou_dn: str) -> bool:
        """Check whether an organizational unit exists"""
        conn = self._require_connection()
        found = conn.search(
            search_base=ou_dn,
            search_filter='(objectClass=organizationalUnit)',
            search_scope=BASE,
            attributes=['ou']
        )
        return bool(found and conn.entries)

    def create_ou(self, ou_dn: str, description: str = "") -> None:
        """Create an organizational unit"""
        conn = self._require_connection()
        attributes = {'description': description} if description else None
        if not conn.add(ou_dn, 'organizationalUnit', attributes):
            raise self._failure("Create OU", ou_dn)
        self.logger.info(f"Created organizational unit {ou_dn}")

    # -- Users -------------------------------------------------------------

    def find_user_by_employee_id(self, employee_id: str) -> Dict[str, Any]:
        """Look up an account by employeeID; empty dict when not found"""
        conn = self._require_connection()
        search_filter = f"(&(objectClass=user)(employeeID={escape_filter_chars(employee_id)}))"
        conn.search(
            search_base=self.base_dn,
            search_filter=search_filter,
            search_scope=SUBTREE,
            attributes=['distinguishedName', 'sAMAccountName', 'mail', 'objectGUID']
        )

        # A failed search must never read as "no account"
        result_code = (conn.result or {}).get('result', RESULT_SUCCESS)
        if result_code not in (RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT):
            raise self._failure("Find account", f"employee ID {employee_id}")

        if not conn.entries:
            self.logger.debug(f"No account found for employee ID {employee_id}")
            return {}

        if len(conn.entries) > 1:
            self.logger.warning(f"Multiple accounts found for employee ID {employee_id}, using first match")

        entry = conn.entries[0]
        return {
            'dn': entry.entry_dn,
            'samaccountname': str(entry.sAMAccountName) if entry.sAMAccountName else "",
            'email': str(entry.mail) if entry.mail else "",
            'guid': str(entry.objectGUID.value) if entry.objectGUID else "",
        }

    def create_user(self, user_dn: str, attributes: Dict[str, Any], password: str) -> None:
        """Create an account, set its password and enable it

        The account is created disabled, then the password is set and the
        account is enabled with pwdLastSet=0 so the user must change it.
        If either follow-up fails the new object is deleted again, so a
        failed creation never leaves a disabled, passwordless account behind.
        """
        conn = self._require_connection()
        attrs = dict(attributes)
        attrs['userAccountControl'] = NORMAL_ACCOUNT | ACCOUNTDISABLE

        if not conn.add(user_dn, USER_OBJECT_CLASSES, attrs):
            raise self._failure("Create account", user_dn)
        self.logger.info(f"Created account {user_dn}")

        if not conn.extend.microsoft.modify_password(user_dn, password):
            raise self._rollback(self._failure("Set password", user_dn), user_dn)

        changes = {
            'userAccountControl': [(MODIFY_REPLACE, [NORMAL_ACCOUNT])],
            'pwdLastSet': [(MODIFY_REPLACE, [0])],
        }
        if not conn.modify(user_dn, changes):
            raise self._rollback(self._failure("Enable account", user_dn), user_dn)
        self.logger.debug(f"Enabled account {user_dn}")

    def _rollback(self, error: DirectoryError, user_dn: str) -> DirectoryError:
        """Delete a half-created account; returns the error to raise"""
        if self.connection.delete(user_dn):
            self.logger.warning(f"Removed incomplete account {user_dn}")
            return error
        cleanup = self._failure("Remove incomplete account", user_dn)
        self.logger.error(f"{cleanup} - disabled account left behind")
        return DirectoryError(f"{error}; {cleanup} - disabled account left at {user_dn}", error.result)

    def set_manager(self, user_dn: str, manager_dn: str) -> None:
        conn = self._require_connection()
        if not conn.modify(user_dn, {'manager': [(MODIFY_REPLACE, [manager_dn])]}):
            raise self._failure("Set manager", user_dn)

    def add_to_group(self, user_dn: str, group_dn: str) -> None:
        conn = self._require_connection()
        if not conn.extend.microsoft.add_members_to_groups([user_dn], [group_dn]):
            raise self._failure(f"Add to group {group_dn}", user_dn)

    def get_object_guid(self, dn: str) -> str:
        """Read back the objectGUID assigned by the directory"""
        conn = self._require_connection()
        conn.search(search_base=dn, search_filter='(objectClass=*)',
                    search_scope=BASE, attributes=['objectGUID'])
        if not conn.entries or not conn.entries[0].objectGUID:
            raise self._failure("Read objectGUID", dn)
        return str(conn.entries[0].objectGUID.value)
