"""The ``mysql`` plugin: the MySQL client with database credentials."""

from __future__ import annotations

from shellcred.plugins.mysql.database_credentials import NAME, database_credentials
from shellcred.schema import Executable, Plugin


def mysql_cli() -> Executable:
    return Executable(
        name="MySQL CLI",
        runs=["mysql"],
        uses=[NAME],
        docs_url="https://dev.mysql.com/doc/refman/en/mysql.html",
    )


def new() -> Plugin:
    return Plugin(
        name="mysql",
        platform="MySQL",
        homepage="https://www.mysql.com/",
        credentials=[database_credentials()],
        executables=[mysql_cli()],
    )
