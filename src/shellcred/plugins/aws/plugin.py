"""The ``aws`` plugin: AWS CLI authenticated with an access key."""

from __future__ import annotations

from shellcred.plugins.aws.access_key import NAME, access_key
from shellcred.schema import Executable, Plugin


def aws_cli() -> Executable:
    return Executable(
        name="AWS CLI",
        runs=["aws"],
        uses=[NAME],
        docs_url="https://aws.amazon.com/cli/",
    )


def new() -> Plugin:
    return Plugin(
        name="aws",
        platform="AWS",
        homepage="https://aws.amazon.com/",
        credentials=[access_key()],
        executables=[aws_cli()],
    )
