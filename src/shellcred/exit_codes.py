"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~shellcred.exceptions.ShellcredError` subclass.
Shell wrappers can inspect the exit code to tell a rejected credential
apart from a malformed config file without parsing stderr.

Example::

    $ shellcred run aws --ephemeral -- aws sts get-caller-identity
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the static credentials were rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The backing identity service rejected the supplied credentials."""

EXIT_NOT_FOUND = 4
"""No usable credential candidate, plugin, or session was found."""

EXIT_PROVISION_FAILURE = 5
"""Creating or tearing down an ephemeral credential failed."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SOURCE_ERROR = 7
"""A credential source exists but could not be read or parsed."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""

EXIT_INTERRUPTED = 130
"""The command was interrupted with Ctrl-C."""
