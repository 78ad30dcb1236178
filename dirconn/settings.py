import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .ldap.models import DEFAULT_PORT, ConnectionConfig
from .log_config import setup_logging

ClientStrategy = Literal["SYNC", "SAFE_SYNC", "RESTARTABLE", "MOCK_SYNC"]


class DirectorySettings(BaseSettings):
    # LDAP
    ldap_server: str = Field(..., alias="LDAP_SERVER")
    ldap_port: int = Field(DEFAULT_PORT, alias="LDAP_PORT", ge=1, le=65535)
    ldap_search_base: str = Field(..., alias="LDAP_SEARCH_BASE")
    ldap_bind_dn: str = Field(..., alias="LDAP_BIND_DN")
    ldap_bind_password: str = Field(..., alias="LDAP_BIND_PASSWORD", repr=False)

    ldap_use_ssl: bool = Field(False, alias="LDAP_USE_SSL")
    ldap_starttls: bool = Field(False, alias="LDAP_STARTTLS")
    ldap_tls_validate: bool = Field(False, alias="LDAP_TLS_VALIDATE")

    # Timeouts in seconds; unset means the ldap3 defaults
    ldap_connect_timeout: Optional[float] = Field(None, alias="LDAP_CONNECT_TIMEOUT", gt=0)
    ldap_receive_timeout: Optional[float] = Field(None, alias="LDAP_RECEIVE_TIMEOUT", gt=0)

    ldap_client_strategy: ClientStrategy = Field("SYNC", alias="LDAP_CLIENT_STRATEGY")
    ldap_escape_filter_values: bool = Field(True, alias="LDAP_ESCAPE_FILTER_VALUES")

    # Logging; file output only when LOG_DIR is set
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: Optional[str] = Field(None, alias="LOG_DIR")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS", ge=1)

    class Config:
        populate_by_name = True

    def to_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            server=self.ldap_server,
            port=self.ldap_port,
            search_base_dn=self.ldap_search_base,
            bind_dn=self.ldap_bind_dn,
            bind_password=self.ldap_bind_password,
            use_ssl=self.ldap_use_ssl,
            starttls=self.ldap_starttls,
            tls_validate=self.ldap_tls_validate,
            connect_timeout=self.ldap_connect_timeout,
            receive_timeout=self.ldap_receive_timeout,
            client_strategy=self.ldap_client_strategy,
            escape_filter_values=self.ldap_escape_filter_values,
        )

    def configure_logging(self) -> logging.Logger:
        return setup_logging(
            level=self.log_level,
            log_dir=self.log_dir,
            retention_days=self.log_retention_days,
        )


@lru_cache(maxsize=1)
def get_settings() -> DirectorySettings:
    return DirectorySettings()
