"""AWS access keys backed by IAM users."""

from shellcred.plugins.aws.access_key import access_key
from shellcred.plugins.aws.plugin import new

__all__ = ["access_key", "new"]
