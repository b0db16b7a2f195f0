import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv
from sqlalchemy.engine import URL


load_dotenv()

DEFAULT_SQLITE_PATH = "appointments.db"
DEFAULT_APP_HOST = "0.0.0.0"
DEFAULT_APP_PORT = 8080


class ConfigurationError(RuntimeError):
    pass


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, name: str, default: int | None = None) -> int | None:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.") from exc


def _get_str(environ: Mapping[str, str], name: str, default: str = "") -> str:
    return (environ.get(name) or default).strip()


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the appointments database.

    ``DATABASE_URL`` overrides everything. Otherwise a non-empty ``host``
    selects the networked PostgreSQL variant and an empty one selects the
    embedded SQLite file at ``sqlite_path``.
    """

    user: str = ""
    password: str = ""
    host: str = ""
    name: str = ""
    port: int | None = None
    sqlite_path: str = DEFAULT_SQLITE_PATH
    url: str | None = None

    @property
    def is_networked(self) -> bool:
        return self.url is None and bool(self.host)

    @property
    def is_sqlite(self) -> bool:
        if self.url is not None:
            return self.url.startswith("sqlite")
        return not self.host

    def sqlalchemy_url(self) -> URL | str:
        if self.url is not None:
            return self.url
        if self.is_networked:
            return URL.create(
                "postgresql+psycopg2",
                username=self.user,
                password=self.password or None,
                host=self.host,
                port=self.port,
                database=self.name,
            )
        return f"sqlite:///{self.sqlite_path}"

    def validate(self) -> None:
        if not self.is_networked:
            return
        missing = [
            env_name
            for env_name, value in (("DB_USER", self.user), ("DB_NAME", self.name))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} must be set when DB_HOST is configured."
            )

    def describe(self) -> str:
        if self.url is not None:
            return "DATABASE_URL"
        if self.is_networked:
            return f"postgresql://{self.host}/{self.name}"
        return f"sqlite file {self.sqlite_path}"


@dataclass(frozen=True)
class ServerConfig:
    host: str = DEFAULT_APP_HOST
    port: int = DEFAULT_APP_PORT
    log_level: str = "INFO"
    docs_enabled: bool = True


def load_database_config(environ: Mapping[str, str] | None = None) -> DatabaseConfig:
    environ = os.environ if environ is None else environ
    return DatabaseConfig(
        user=_get_str(environ, "DB_USER"),
        password=environ.get("DB_PASS") or "",
        host=_get_str(environ, "DB_HOST"),
        name=_get_str(environ, "DB_NAME"),
        port=_get_int(environ.get("DB_PORT"), "DB_PORT"),
        sqlite_path=_get_str(environ, "SQLITE_PATH", DEFAULT_SQLITE_PATH),
        url=_get_str(environ, "DATABASE_URL") or None,
    )


def load_server_config(environ: Mapping[str, str] | None = None) -> ServerConfig:
    environ = os.environ if environ is None else environ
    return ServerConfig(
        host=_get_str(environ, "APP_HOST", DEFAULT_APP_HOST),
        port=_get_int(environ.get("APP_PORT"), "APP_PORT", DEFAULT_APP_PORT),
        log_level=_get_str(environ, "LOG_LEVEL", "INFO").upper(),
        docs_enabled=_get_bool(environ.get("API_DOCS_ENABLED"), default=True),
    )
