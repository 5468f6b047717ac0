"""MySQL database credentials: option files in, temporary ``--defaults-file`` out.

Discovery reads the standard option files (``/etc/my.cnf``,
``/etc/mysql/my.cnf``, ``~/.my.cnf``, ``~/.mylogin.cnf``). The credentials
reach the ``mysql`` client through a private option file passed with
``--defaults-file``, never on the command line.

Ephemeral credentials are a transient MySQL account created with the static
account's privileges and dropped again afterwards.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from shellcred.exceptions import AuthError, ConnectionError_, ProvisionError, RemovalError
from shellcred.importer import (
    FileContents,
    ImportAttempt,
    ImportInput,
    TryAll,
    TryFile,
    extract_fields,
)
from shellcred.models import FieldName, ImportCandidate
from shellcred.provision import ProvisionInput, ProvisionOutput, TempFileProvisioner
from shellcred.provision.names import random_password, transient_name
from shellcred.schema import CredentialField, CredentialType

logger = logging.getLogger(__name__)

NAME = "database_credentials"

OPTION_FILES = ("/etc/my.cnf", "/etc/mysql/my.cnf", "~/.my.cnf", "~/.mylogin.cnf")

OPTION_FILE_KEYS = {
    "user": FieldName.USER,
    "password": FieldName.PASSWORD,
    "host": FieldName.HOST,
    "port": FieldName.PORT,
    "database": FieldName.DATABASE,
}

# Option groups read by the mysql client, lowest precedence first.
CLIENT_GROUPS = ("client", "mysql")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3306

_LOCAL_HOSTS = frozenset({"", "localhost", "127.0.0.1", "::1"})

# MySQL server error codes.
_ACCESS_DENIED = 1045
_UNREACHABLE = frozenset({2002, 2003, 2005, 2006, 2013})

USER_KEY = "user"
HOST_KEY = "host"


# --- Discovery ---


def _strip_directives(contents: FileContents) -> FileContents:
    """Drop ``!include`` / ``!includedir`` lines, which are not INI."""
    lines = [
        line
        for line in contents.to_text().splitlines()
        if not line.lstrip().startswith("!")
    ]
    return FileContents("\n".join(lines).encode("utf-8"), path=contents.path)


def _parse_option_file(contents: FileContents, in_: ImportInput, out: ImportAttempt) -> None:
    parser = _strip_directives(contents).to_ini()
    fields: dict[FieldName, str] = {}
    for group in CLIENT_GROUPS:
        if parser.has_section(group):
            fields.update(extract_fields(parser[group], OPTION_FILE_KEYS))
    if fields:
        out.add_candidate(ImportCandidate(fields=fields))


def option_file_importer(path: str) -> TryFile:
    return TryFile(path, _parse_option_file)


def importer() -> TryAll:
    return TryAll(*(option_file_importer(path) for path in OPTION_FILES))


# --- Provisioning ---


def mysql_config(in_: ProvisionInput) -> bytes:
    """Render a ``[client]`` option file holding the present fields."""
    lines = ["[client]"]
    for key, name in OPTION_FILE_KEYS.items():
        value = in_.item_fields.get(name)
        if value:
            lines.append(f"{key}={value}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def provisioner() -> TempFileProvisioner:
    return TempFileProvisioner(mysql_config, "my.cnf", args=["--defaults-file={{ path }}"])


# --- Ephemeral accounts ---


def create_mysql_engine(in_: ProvisionInput) -> Engine:
    """Engine authenticated with the static account, one connection per call."""
    port = in_.get(FieldName.PORT)
    url = URL.create(
        "mysql+pymysql",
        username=in_.get(FieldName.USER) or None,
        password=in_.get(FieldName.PASSWORD) or None,
        host=in_.get(FieldName.HOST, DEFAULT_HOST),
        port=int(port) if port else DEFAULT_PORT,
    )
    return create_engine(
        url,
        poolclass=NullPool,
        connect_args={
            "connect_timeout": in_.timeout,
            "read_timeout": in_.timeout,
            "write_timeout": in_.timeout,
        },
        future=True,
    )


def account_host(server_host: Optional[str]) -> str:
    """Host part of the transient account: ``localhost`` for a local server."""
    if (server_host or "").strip().lower() in _LOCAL_HOSTS:
        return "localhost"
    return "%"


def _quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _error_code(exc: DBAPIError) -> Optional[int]:
    args = getattr(exc.orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _translate(exc: SQLAlchemyError, action: str) -> Exception:
    code = _error_code(exc) if isinstance(exc, DBAPIError) else None
    if code == _ACCESS_DENIED:
        return AuthError(f"MySQL rejected the static credentials while trying to {action}")
    if code in _UNREACHABLE:
        return ConnectionError_(f"Could not reach MySQL to {action}: {exc.orig}")
    return ProvisionError(f"MySQL refused to {action}: {exc}")


def generate_account(in_: ProvisionInput, out: ProvisionOutput) -> dict[FieldName, str]:
    """Create a transient account and grant it the static account's scope.

    The grant covers the configured database when one is set, every
    database otherwise.
    """
    if out.cache is None:
        raise ProvisionError("Generating a MySQL account needs a session cache")
    user = transient_name(in_.rng)
    password = random_password(in_.rng)
    host = account_host(in_.get(FieldName.HOST))
    database = in_.get(FieldName.DATABASE)
    scope = f"{_quote_identifier(database)}.*" if database else "*.*"

    engine = create_mysql_engine(in_)
    try:
        with engine.connect() as conn:
            conn.execute(
                text("CREATE USER :user@:host IDENTIFIED BY :password"),
                {"user": user, "host": host, "password": password},
            )
            out.cache.put(USER_KEY, user, in_.expires_at())
            out.cache.put(HOST_KEY, host, in_.expires_at())
            logger.info("Created MySQL account %s@%s", user, host)

            conn.execute(
                text(f"GRANT ALL PRIVILEGES ON {scope} TO :user@:host"),
                {"user": user, "host": host},
            )
            conn.commit()
    except SQLAlchemyError as exc:
        raise _translate(exc, "create a MySQL account") from exc
    finally:
        engine.dispose()

    return {FieldName.USER: user, FieldName.PASSWORD: password}


def remove_account(in_: ProvisionInput) -> None:
    """Drop the transient account; a missing account is not an error."""
    user = in_.cache.get_str(USER_KEY)
    if user is None:
        return
    host = in_.cache.get_str(HOST_KEY) or "localhost"

    engine = create_mysql_engine(in_)
    try:
        with engine.connect() as conn:
            conn.execute(text("DROP USER IF EXISTS :user@:host"), {"user": user, "host": host})
            conn.commit()
    except SQLAlchemyError as exc:
        translated = _translate(exc, "drop a MySQL account")
        if isinstance(translated, ProvisionError):
            translated = RemovalError(f"Could not drop MySQL account {user}@{host}: {exc}")
        raise translated from exc
    finally:
        engine.dispose()
    logger.info("Dropped MySQL account %s@%s", user, host)


# --- Credential type ---


def database_credentials() -> CredentialType:
    return CredentialType(
        name=NAME,
        docs_url="https://dev.mysql.com/doc/refman/en/connecting.html",
        fields=[
            CredentialField(FieldName.HOST, "MySQL host to connect to.", optional=True),
            CredentialField(FieldName.PORT, "Port used to connect to MySQL.", optional=True),
            CredentialField(FieldName.USER, "MySQL user to authenticate as.", optional=True),
            CredentialField(
                FieldName.PASSWORD, "Password used to authenticate to MySQL.", secret=True
            ),
            CredentialField(FieldName.DATABASE, "Database name to connect to.", optional=True),
        ],
        importer=importer(),
        default_provisioner=provisioner(),
        key_generator=generate_account,
        key_remover=remove_account,
    )
