"""MySQL option files and transient database accounts."""

from shellcred.plugins.mysql.database_credentials import database_credentials
from shellcred.plugins.mysql.plugin import new

__all__ = ["database_credentials", "new"]
