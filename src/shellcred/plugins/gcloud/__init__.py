"""Google Cloud application default credentials and impersonated tokens."""

from shellcred.plugins.gcloud.credentials import credentials
from shellcred.plugins.gcloud.plugin import new

__all__ = ["credentials", "new"]
