"""Vendor plugins and the registry that discovers them.

Each sub-package describes one platform as a
:class:`~shellcred.schema.Plugin`: its credential types (importer, default
provisioner, key generator and remover) and the executables that use them.

* :mod:`shellcred.plugins.aws` -- access keys, IAM-backed ephemeral keys.
* :mod:`shellcred.plugins.mysql` -- option files, transient MySQL accounts.
* :mod:`shellcred.plugins.gcloud` -- application default credentials,
  impersonated access tokens.
* :mod:`shellcred.plugins.terraform` -- reuses the AWS access key.

Third-party plugins register through the ``shellcred.plugins`` entry-point
group; see :class:`~shellcred.plugins.manager.PluginRegistry`.
"""
