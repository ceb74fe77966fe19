"""HTTP client module for xapi.

Provides the asynchronous request layer that wraps :mod:`httpx` with bearer
injection, a single retry after a forced credential refresh, and typed
error mapping, plus the endpoint capabilities built on top of it.

Classes:
    :class:`ApiClient` -- request layer backed by :class:`httpx.AsyncClient`.
    :class:`TweetsApi` -- post creation and deletion.
    :class:`UsersApi` -- the authorising user.

Example::

    from xapi.client import ApiClient

    async with ApiClient(manager) as client:
        me = await client.users.me()
"""

from xapi.client.async_client import ApiClient
from xapi.client.endpoints import TweetsApi, UsersApi

__all__ = ["ApiClient", "TweetsApi", "UsersApi"]
