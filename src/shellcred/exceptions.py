"""Exception hierarchy for shellcred.

All exceptions inherit from :class:`ShellcredError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`shellcred.exit_codes`.
The top-level error handler in :func:`shellcred.app.main` catches
``ShellcredError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Discovery never raises these for a broken source: importers record them as
values on :class:`~shellcred.importer.attempt.ImportResult` instead.

Subclass hierarchy::

    ShellcredError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ProvisionError      (exit 5)
    +-- RemovalError        (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- SourceError         (exit 7)
    |   +-- SourceReadError
    |   +-- SourceParseError
    +-- CacheDecodeError    (exit 1)
    +-- PluginError         (exit 10)
    +-- ConfigError         (exit 1)
"""

from shellcred.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PLUGIN_ERROR,
    EXIT_PROVISION_FAILURE,
    EXIT_SOURCE_ERROR,
)


class ShellcredError(Exception):
    """Base exception for all shellcred errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`shellcred.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ShellcredError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(ShellcredError):
    """Raised when a backing identity service rejects the static credentials."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(ShellcredError):
    """Raised when no plugin, credential type, or usable candidate matches."""

    exit_code = EXIT_NOT_FOUND


class ProvisionError(ShellcredError):
    """Raised when an ephemeral credential cannot be created.

    Attributes:
        session_id: Identifier of the provisioning session, when one was
            opened. Set on quarantined sessions so the caller can retry
            cleanup later.
    """

    exit_code = EXIT_PROVISION_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        session_id: str | None = None,
    ):
        super().__init__(message, exit_code)
        self.session_id = session_id


class RemovalError(ShellcredError):
    """Raised when the backing service refuses to delete an ephemeral credential.

    A credential that is already gone is never reported with this error.
    """

    exit_code = EXIT_PROVISION_FAILURE


class ConnectionError_(ShellcredError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SourceError(ShellcredError):
    """Base class for credential sources that exist but cannot be used."""

    exit_code = EXIT_SOURCE_ERROR


class SourceReadError(SourceError):
    """Raised when a present file cannot be read (permissions, I/O errors)."""


class SourceParseError(SourceError):
    """Raised when a present file is not valid INI, JSON, or YAML."""


class CacheDecodeError(ShellcredError):
    """Raised when a cache entry cannot be decoded back into its value."""

    exit_code = EXIT_GENERIC_FAILURE


class PluginError(ShellcredError):
    """Raised when a plugin fails to load or declares an invalid credential type."""

    exit_code = EXIT_PLUGIN_ERROR


class ConfigError(ShellcredError):
    """Raised for configuration problems (invalid JSON, bad override values)."""

    exit_code = EXIT_GENERIC_FAILURE
