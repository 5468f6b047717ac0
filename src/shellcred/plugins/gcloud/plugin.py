"""The ``gcloud`` plugin: the Google Cloud CLI with application default credentials."""

from __future__ import annotations

from shellcred.plugins.gcloud.credentials import NAME, credentials
from shellcred.schema import Executable, Plugin, not_for_help_or_version


def gcloud_cli() -> Executable:
    return Executable(
        name="Google Cloud CLI",
        runs=["gcloud"],
        uses=[NAME],
        needs_auth=not_for_help_or_version,
        docs_url="https://cloud.google.com/sdk/gcloud",
    )


def new() -> Plugin:
    return Plugin(
        name="gcloud",
        platform="Google Cloud",
        homepage="https://cloud.google.com/",
        credentials=[credentials()],
        executables=[gcloud_cli()],
    )
