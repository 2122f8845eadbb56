"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sql_raw_auth.domain.auth.capabilities import BackendQueries
from sql_raw_auth.domain.auth.hash_schemes import LegacyHashAlgorithm, parse_hash_algorithm

NonEmptyStr = Annotated[str, Field(min_length=1)]
PortInt = Annotated[int, Field(gt=0, le=65535)]


class Settings(BaseSettings):
    """Environment-driven backend settings; immutable once loaded."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    database_url: str | None = Field(default=None, validation_alias="SQL_RAW_DATABASE_URL")
    db_type: Literal["postgresql", "mariadb"] | None = Field(
        default=None,
        validation_alias="SQL_RAW_DB_TYPE",
    )
    db_host: NonEmptyStr = Field(default="localhost", validation_alias="SQL_RAW_DB_HOST")
    db_port: PortInt | None = Field(default=None, validation_alias="SQL_RAW_DB_PORT")
    db_name: str | None = Field(default=None, validation_alias="SQL_RAW_DB_NAME")
    db_user: str | None = Field(default=None, validation_alias="SQL_RAW_DB_USER")
    db_password: str | None = Field(default=None, validation_alias="SQL_RAW_DB_PASSWORD")
    db_password_file: str | None = Field(
        default=None,
        validation_alias="SQL_RAW_DB_PASSWORD_FILE",
    )
    mariadb_charset: NonEmptyStr = Field(
        default="utf8mb4",
        validation_alias="SQL_RAW_MARIADB_CHARSET",
    )
    query_user_exists: str | None = Field(
        default=None,
        validation_alias="SQL_RAW_QUERY_USER_EXISTS",
    )
    query_get_password_hash: str | None = Field(
        default=None,
        validation_alias="SQL_RAW_QUERY_GET_PASSWORD_HASH",
    )
    query_get_users: str | None = Field(
        default=None,
        validation_alias="SQL_RAW_QUERY_GET_USERS",
    )
    query_set_password_hash: str | None = Field(
        default=None,
        validation_alias="SQL_RAW_QUERY_SET_PASSWORD_HASH",
    )
    hash_algorithm: LegacyHashAlgorithm | None = Field(
        default=None,
        validation_alias="SQL_RAW_HASH_ALGORITHM",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator(
        "database_url",
        "db_type",
        "db_port",
        "db_name",
        "db_user",
        "db_password",
        "db_password_file",
        "query_user_exists",
        "query_get_password_hash",
        "query_get_users",
        "query_set_password_hash",
        mode="before",
    )
    @classmethod
    def _blank_as_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("hash_algorithm", mode="before")
    @classmethod
    def _parse_hash_algorithm(cls, value: Any) -> Any:
        if value is None or isinstance(value, LegacyHashAlgorithm):
            return value
        return parse_hash_algorithm(str(value))

    @model_validator(mode="after")
    def _check_database_source(self) -> "Settings":
        if self.database_url is None and (self.db_type is None or self.db_name is None):
            raise ValueError(
                "set SQL_RAW_DATABASE_URL or both SQL_RAW_DB_TYPE and SQL_RAW_DB_NAME"
            )
        if self.db_password is not None and self.db_password_file is not None:
            raise ValueError("set only one of SQL_RAW_DB_PASSWORD or SQL_RAW_DB_PASSWORD_FILE")
        return self

    def backend_queries(self) -> BackendQueries:
        """Return the configured SQL templates as an immutable snapshot."""

        return BackendQueries(
            user_exists=self.query_user_exists,
            get_password_hash=self.query_get_password_hash,
            get_users=self.query_get_users,
            set_password_hash=self.query_set_password_hash,
        )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache backend settings."""

    return Settings()  # type: ignore[call-arg]
