"""shellcred -- discover credentials for command-line tools and provision ephemeral keys.

This package finds authentication material for CLIs (AWS, MySQL, Google
Cloud, Terraform, ...) in the places those tools already look for it --
environment variables, INI config files, JSON credential files -- and, where
the backing service supports it, swaps long-lived credentials for a
short-lived identity that only exists while the wrapped command runs.

Typical workflow::

    shellcred import aws                       # list discovered candidates
    shellcred run aws --ephemeral -- aws s3 ls # run with a throwaway IAM key

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading.
    exceptions: Exception hierarchy with exit-code mapping.
    importer: Candidate discovery strategies and combinators.
    cache: Session-scoped credential cache backed by :mod:`diskcache`.
    provision: Ephemeral provisioning engine and default provisioners.
    plugins: Built-in vendor plugins and the plugin registry.
"""

__version__ = "0.3.0"
