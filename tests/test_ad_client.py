from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from ldap3 import BASE, MODIFY_REPLACE

from core.ad_client import ACCOUNTDISABLE, NORMAL_ACCOUNT, ActiveDirectoryClient
from core.errors import DirectoryError

BASE_DN = "DC=example,DC=org"


class Attr:
    """Minimal stand-in for an ldap3 entry attribute"""

    def __init__(self, value):
        self.value = value

    def __str__(self):
        return str(self.value)

    def __bool__(self):
        return bool(self.value)


def entry(dn, **attrs):
    return SimpleNamespace(entry_dn=dn, **{k: Attr(v) for k, v in attrs.items()})


@pytest.fixture
def client():
    client = ActiveDirectoryClient("ldaps://dc1", "svc", "secret", BASE_DN)
    client.connection = MagicMock()
    client.connection.result = {'description': 'success'}
    return client


def test_connect_failure_raises_directory_error():
    with patch("core.ad_client.Server"), \
            patch("core.ad_client.Connection", side_effect=Exception("invalidCredentials")):
        with pytest.raises(DirectoryError):
            ActiveDirectoryClient("ldaps://dc1", "svc", "bad", BASE_DN).connect()


def test_context_manager_binds_and_unbinds():
    with patch("core.ad_client.Server") as server, patch("core.ad_client.Connection") as connection:
        with ActiveDirectoryClient("ldaps://dc1", "svc", "secret", BASE_DN, use_ssl=True) as client:
            assert client.connection is connection.return_value
        connection.return_value.unbind.assert_called_once()
        server.assert_called_once()
        assert server.call_args.kwargs['use_ssl'] is True


def test_operations_require_connection():
    with pytest.raises(ConnectionError):
        ActiveDirectoryClient("ldaps://dc1", "svc", "secret", BASE_DN).ou_exists("OU=ICU," + BASE_DN)


def test_ou_exists(client):
    client.connection.search.return_value = True
    client.connection.entries = [entry("OU=ICU," + BASE_DN, ou="ICU")]

    assert client.ou_exists("OU=ICU," + BASE_DN)
    assert client.connection.search.call_args.kwargs['search_scope'] == BASE


def test_ou_missing(client):
    client.connection.search.return_value = False
    client.connection.entries = []

    assert not client.ou_exists("OU=Nope," + BASE_DN)


def test_create_ou_failure_carries_result(client):
    client.connection.add.return_value = False
    client.connection.result = {'description': 'entryAlreadyExists', 'message': ''}

    with pytest.raises(DirectoryError) as excinfo:
        client.create_ou("OU=ICU," + BASE_DN, description="ICU")

    assert excinfo.value.result['description'] == 'entryAlreadyExists'


def test_find_user_by_employee_id(client):
    client.connection.entries = [entry("CN=Sam Boss," + BASE_DN, sAMAccountName="SBoss00",
                                       mail="sam.boss@example.org", objectGUID="{abc}")]

    found = client.find_user_by_employee_id("900")

    assert found == {'dn': "CN=Sam Boss," + BASE_DN, 'samaccountname': "SBoss00",
                     'email': "sam.boss@example.org", 'guid': "{abc}"}
    assert "(employeeID=900)" in client.connection.search.call_args.kwargs['search_filter']


def test_find_user_escapes_filter(client):
    client.connection.entries = []

    assert client.find_user_by_employee_id("9*)") == {}
    assert "9\\2a\\29" in client.connection.search.call_args.kwargs['search_filter']


def test_create_user_adds_disabled_then_enables(client):
    conn = client.connection
    conn.add.return_value = True
    conn.extend.microsoft.modify_password.return_value = True
    conn.modify.return_value = True

    client.create_user("CN=Mary," + BASE_DN, {'sAMAccountName': 'MOBrie45'}, "Abc123Def456")

    added_attrs = conn.add.call_args.args[2]
    assert added_attrs['userAccountControl'] == NORMAL_ACCOUNT | ACCOUNTDISABLE
    conn.extend.microsoft.modify_password.assert_called_once_with("CN=Mary," + BASE_DN, "Abc123Def456")
    changes = conn.modify.call_args.args[1]
    assert changes['userAccountControl'] == [(MODIFY_REPLACE, [NORMAL_ACCOUNT])]
    assert changes['pwdLastSet'] == [(MODIFY_REPLACE, [0])]


def test_create_user_password_failure(client):
    conn = client.connection
    conn.add.return_value = True
    conn.extend.microsoft.modify_password.return_value = False
    conn.result = {'description': 'unwillingToPerform'}

    with pytest.raises(DirectoryError, match="Set password"):
        client.create_user("CN=Mary," + BASE_DN, {}, "Abc123Def456")
    conn.modify.assert_not_called()


def test_set_manager_and_groups(client):
    conn = client.connection
    conn.modify.return_value = True
    conn.extend.microsoft.add_members_to_groups.return_value = True

    client.set_manager("CN=Mary," + BASE_DN, "CN=Sam," + BASE_DN)
    client.add_to_group("CN=Mary," + BASE_DN, "CN=Staff," + BASE_DN)

    assert conn.modify.call_args.args[1] == {'manager': [(MODIFY_REPLACE, ["CN=Sam," + BASE_DN])]}
    conn.extend.microsoft.add_members_to_groups.assert_called_once_with(
        ["CN=Mary," + BASE_DN], ["CN=Staff," + BASE_DN])


def test_group_failure_raises(client):
    client.connection.extend.microsoft.add_members_to_groups.return_value = False

    with pytest.raises(DirectoryError):
        client.add_to_group("CN=Mary," + BASE_DN, "CN=Staff," + BASE_DN)


def test_get_object_guid(client):
    client.connection.entries = [entry("CN=Mary," + BASE_DN, objectGUID="{1234-abcd}")]

    assert client.get_object_guid("CN=Mary," + BASE_DN) == "{1234-abcd}"


def test_get_object_guid_missing(client):
    client.connection.entries = []

    with pytest.raises(DirectoryError):
        client.get_object_guid("CN=Mary," + BASE_DN)


def test_find_user_search_failure_raises(client):
    client.connection.search.return_value = False
    client.connection.entries = []
    client.connection.result = {'result': 51, 'description': 'busy', 'message': ''}

    with pytest.raises(DirectoryError, match="Find account.*busy"):
        client.find_user_by_employee_id("12345")


def test_find_user_no_such_object_is_not_found(client):
    client.connection.search.return_value = False
    client.connection.entries = []
    client.connection.result = {'result': 32, 'description': 'noSuchObject'}

    assert client.find_user_by_employee_id("12345") == {}


def test_create_user_removes_account_when_password_fails(client):
    conn = client.connection
    conn.add.return_value = True
    conn.extend.microsoft.modify_password.return_value = False
    conn.delete.return_value = True
    conn.result = {'description': 'unwillingToPerform'}

    with pytest.raises(DirectoryError, match="Set password"):
        client.create_user("CN=Mary," + BASE_DN, {}, "Abc123Def456")
    conn.delete.assert_called_once_with("CN=Mary," + BASE_DN)


def test_create_user_removes_account_when_enable_fails(client):
    conn = client.connection
    conn.add.return_value = True
    conn.extend.microsoft.modify_password.return_value = True
    conn.modify.return_value = False
    conn.delete.return_value = True

    with pytest.raises(DirectoryError, match="Enable account"):
        client.create_user("CN=Mary," + BASE_DN, {}, "Abc123Def456")
    conn.delete.assert_called_once_with("CN=Mary," + BASE_DN)


def test_create_user_reports_leftover_account_when_cleanup_fails(client):
    conn = client.connection
    conn.add.return_value = True
    conn.extend.microsoft.modify_password.return_value = False
    conn.delete.return_value = False

    with pytest.raises(DirectoryError, match="disabled account left at CN=Mary"):
        client.create_user("CN=Mary," + BASE_DN, {}, "Abc123Def456")
