"""Built-in CLI sub-commands for xapi.

This package groups the Typer command modules that form the CLI:

* :mod:`~xapi.commands.auth` -- log in, refresh, inspect and forget
  credentials.
* :mod:`~xapi.commands.config` -- show, set and reset the persisted
  configuration.
* :mod:`~xapi.commands.posts` -- create and delete posts, show the
  authorising user.
* :mod:`~xapi.commands.context` -- shared helpers that build the
  credential manager from the invocation context and run coroutines.

``auth`` and ``config`` are exported as :class:`typer.Typer` sub-applications;
the post commands are plain callbacks registered directly on the root app.
"""
