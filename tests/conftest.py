import logging

import pytest
from ldap3 import MOCK_SYNC, NONE, Connection, Server

from dirconn.ldap import DirectoryConnection

SERVER_NAME = "fake_directory"
ROOT_DN = "dc=example,dc=org"
BASE_DN = f"ou=people,{ROOT_DN}"
ADMIN_DN = f"cn=admin,{ROOT_DN}"
ADMIN_PASSWORD = "secret"


class FakeDirectory:
    """In-memory directory backed by ldap3's mock strategy.

    Every DirectoryConnection opened while the fixture is active talks to
    the same fake server, so entries survive reconnects.
    """

    def __init__(self) -> None:
        self.server = Server(SERVER_NAME, get_info=NONE)
        self.seed = Connection(self.server, user=ADMIN_DN, password=ADMIN_PASSWORD, client_strategy=MOCK_SYNC)
        self.seed.strategy.add_entry(ADMIN_DN, {
            "objectClass": ["top", "organizationalRole", "simpleSecurityObject"],
            "cn": "admin",
            "userPassword": ADMIN_PASSWORD,
        })
        self.seed.strategy.add_entry(BASE_DN, {
            "objectClass": ["top", "organizationalUnit"],
            "ou": "people",
        })

    def add_person(self, uid: str, dn: str | None = None, **attrs) -> str:
        dn = dn or f"uid={uid},{BASE_DN}"
        entry = {
            "objectClass": ["top", "person", "organizationalPerson", "inetOrgPerson", "posixAccount"],
            "uid": uid,
            "cn": attrs.pop("cn", uid),
            "sn": attrs.pop("sn", uid),
        }
        entry.update(attrs)
        self.seed.strategy.add_entry(dn, entry)
        return dn

    def dns(self) -> set[str]:
        return {str(dn).lower() for dn in self.server.dit}


@pytest.fixture
def fake_directory(monkeypatch):
    fake = FakeDirectory()
    monkeypatch.setattr(DirectoryConnection, "_make_server", lambda self, cfg: fake.server)
    return fake


@pytest.fixture
def directory(fake_directory, client_log):
    conn = DirectoryConnection(SERVER_NAME, BASE_DN, ADMIN_DN, ADMIN_PASSWORD, client_strategy=MOCK_SYNC)
    yield conn
    conn.close()


@pytest.fixture
def client_log(caplog):
    caplog.set_level(logging.DEBUG, logger="dirconn")
    return caplog
