"""The ``terraform`` plugin: Terraform's AWS provider authenticated with an AWS access key."""

from __future__ import annotations

from shellcred.plugins.aws.access_key import NAME, access_key
from shellcred.schema import Executable, Plugin, not_for_help_or_version


def terraform_cli() -> Executable:
    return Executable(
        name="Terraform CLI",
        runs=["terraform"],
        uses=[NAME],
        needs_auth=not_for_help_or_version,
        docs_url="https://developer.hashicorp.com/terraform/cli",
    )


def new() -> Plugin:
    return Plugin(
        name="terraform",
        platform="Terraform",
        homepage="https://www.terraform.io/",
        credentials=[access_key()],
        executables=[terraform_cli()],
    )
