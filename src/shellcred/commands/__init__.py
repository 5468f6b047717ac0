"""Built-in CLI sub-commands for shellcred.

* :mod:`~shellcred.commands.discover` -- ``plugins`` and ``import``.
* :mod:`~shellcred.commands.run` -- ``run``: provision and execute a command.
* :mod:`~shellcred.commands.provision` -- ``generate``, ``remove``, and
  ``sessions`` for two-phase use across processes.

Each module exports plain callback functions registered directly on the
root app in :func:`shellcred.app.register_commands`.
"""
