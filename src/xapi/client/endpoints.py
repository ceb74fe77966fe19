"""Endpoint capabilities of the X v2 API.

Each class groups the calls of one resource and owns only the payload
mapping; authentication and the 401 retry happen in
:meth:`~xapi.client.async_client.ApiClient.request`. New endpoints are
added as methods here rather than as new request paths.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from xapi.models import DeletedTweet, TweetObject, TweetRequest, User, UserObject

if TYPE_CHECKING:
    from xapi.client.async_client import ApiClient


class TweetsApi:
    """Create and delete posts (``tweet.write`` scope)."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def create_tweet(self, text: str) -> TweetObject:
        """Post *text* and return the created post."""
        body = TweetRequest(text=text).model_dump()
        return await self._client.request_model("POST", "/tweets", TweetObject, json_body=body)

    async def delete_tweet(self, tweet_id: str) -> bool:
        """Delete a post by id; returns the ``deleted`` flag reported by the API."""
        result = await self._client.request_model("DELETE", f"/tweets/{tweet_id}", DeletedTweet)
        return result.data.deleted


class UsersApi:
    """Read the authorising user (``users.read`` scope)."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def me(self) -> User:
        result = await self._client.request_model("GET", "/users/me", UserObject)
        return result.data
