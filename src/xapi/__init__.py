"""xapi -- a small OAuth 2.0 client and command line for the X v2 API.

The package keeps a bearer credential cached in memory, refreshes it with a
saved refresh credential when the API rejects it, and falls back to an
interactive authorization-code (PKCE) flow when nothing else works.

Typical workflow::

    xapi auth login          # authorize once, tokens are saved
    xapi tweet "hello"       # post with the saved credentials

Modules:
    app: Typer application and CLI entry point.
    auth: Credential store, token endpoint and credential manager.
    client: Asynchronous request layer and endpoint capabilities.
    models: Pydantic models for config and wire payloads.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
