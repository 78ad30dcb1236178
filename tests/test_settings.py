import logging
import os

import pytest
from pydantic import ValidationError

from dirconn import log_config
from dirconn.settings import DirectorySettings, get_settings

LDAP_ENV = {
    "LDAP_SERVER": "ldap.example.org",
    "LDAP_SEARCH_BASE": "ou=people,dc=example,dc=org",
    "LDAP_BIND_DN": "cn=admin,dc=example,dc=org",
    "LDAP_BIND_PASSWORD": "secret",
}


@pytest.fixture
def ldap_env(monkeypatch):
    for k, v in LDAP_ENV.items():
        monkeypatch.setenv(k, v)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_settings_from_env_defaults(ldap_env):
    cfg = get_settings().to_config()
    assert cfg.server == "ldap.example.org"
    assert cfg.port == 389
    assert cfg.search_base_dn == "ou=people,dc=example,dc=org"
    assert cfg.bind_dn == "cn=admin,dc=example,dc=org"
    assert cfg.bind_password == "secret"
    assert cfg.client_strategy == "SYNC"
    assert cfg.escape_filter_values is True
    assert cfg.connect_timeout is None


def test_settings_transport_options(ldap_env):
    ldap_env.setenv("LDAP_PORT", "636")
    ldap_env.setenv("LDAP_USE_SSL", "true")
    ldap_env.setenv("LDAP_CONNECT_TIMEOUT", "2.5")
    ldap_env.setenv("LDAP_ESCAPE_FILTER_VALUES", "false")

    cfg = DirectorySettings().to_config()
    assert cfg.port == 636
    assert cfg.use_ssl is True
    assert cfg.connect_timeout == 2.5
    assert cfg.escape_filter_values is False


def test_settings_reject_bad_port(ldap_env):
    ldap_env.setenv("LDAP_PORT", "70000")
    with pytest.raises(ValidationError):
        DirectorySettings()


def test_settings_require_server(ldap_env):
    ldap_env.delenv("LDAP_SERVER")
    with pytest.raises(ValidationError):
        DirectorySettings()


@pytest.fixture
def restore_package_logger():
    pkg, ldap3_logger = logging.getLogger(log_config.LOGGER_NAME), logging.getLogger("ldap3")
    handlers, level, ldap3_level = pkg.handlers[:], pkg.level, ldap3_logger.level
    yield pkg
    for h in pkg.handlers[:]:
        if h not in handlers:
            pkg.removeHandler(h)
            h.close()
    pkg.setLevel(level)
    ldap3_logger.setLevel(ldap3_level)


def test_configure_logging_from_settings(ldap_env, tmp_path, restore_package_logger):
    ldap_env.setenv("LOG_LEVEL", "debug")
    ldap_env.setenv("LOG_DIR", str(tmp_path))

    logger = DirectorySettings().configure_logging()
    logging.getLogger("dirconn.ldap.client").debug("hello directory")

    assert logger is restore_package_logger
    assert logger.level == logging.DEBUG
    assert logging.getLogger("ldap3").level == logging.WARNING
    for h in logger.handlers:
        h.flush()
    content = (tmp_path / log_config.LOG_FILE).read_text(encoding="utf-8")
    assert "hello directory" in content


def test_root_logger_is_left_alone(tmp_path, restore_package_logger):
    root = logging.getLogger()
    before = root.handlers[:], root.level

    log_config.setup_logging(level="INFO", log_dir=str(tmp_path))

    assert (root.handlers, root.level) == before


def test_setup_logging_replaces_own_handlers(tmp_path, restore_package_logger):
    log_config.setup_logging(level="INFO", log_dir=str(tmp_path))
    count = len(restore_package_logger.handlers)
    log_config.setup_logging(level="bogus", log_dir=str(tmp_path))

    assert len(restore_package_logger.handlers) == count
    assert restore_package_logger.level == logging.INFO


def test_console_only_without_log_dir(restore_package_logger):
    base = len(restore_package_logger.handlers)
    log_config.setup_logging(level="WARNING")

    added = restore_package_logger.handlers[base:]
    assert len(added) == 1
    assert not isinstance(added[0], logging.FileHandler)


def test_old_rotated_logs_are_removed(tmp_path):
    old = tmp_path / f"{log_config.LOG_FILE}.2000-01-01"
    old.write_text("old", encoding="utf-8")
    os.utime(old, (0, 0))
    fresh = tmp_path / f"{log_config.LOG_FILE}.2999-01-01"
    fresh.write_text("fresh", encoding="utf-8")

    removed = log_config.prune_rotated_logs(str(tmp_path), retention_days=7)

    assert removed == [str(old)]
    assert not old.exists()
    assert fresh.exists()
