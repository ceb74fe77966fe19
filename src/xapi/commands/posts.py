"""Post commands -- thin wrappers over :mod:`xapi.client.endpoints`."""

from __future__ import annotations

import typer

from xapi.auth.manager import CredentialManager
from xapi.client import ApiClient
from xapi.commands.context import run
from xapi.models import TweetObject, User, XapiConfig
from xapi.output import format_response, success


def tweet_command(
    ctx: typer.Context,
    text: str = typer.Argument(help="Text of the post."),
) -> None:
    """Publish a post.

    Example::

        xapi tweet "hello from the terminal"
    """

    async def _tweet(manager: CredentialManager, config: XapiConfig) -> TweetObject:
        async with ApiClient(manager, config.api_base_url, config.timeout) as client:
            return await client.tweets.create_tweet(text)

    created = run(ctx, _tweet)
    format_response(created.model_dump())
    success(f"Posted {created.data.id}.")


def delete_command(
    ctx: typer.Context,
    tweet_id: str = typer.Argument(help="Id of the post to delete."),
) -> None:
    """Delete one of your posts."""

    async def _delete(manager: CredentialManager, config: XapiConfig) -> bool:
        async with ApiClient(manager, config.api_base_url, config.timeout) as client:
            return await client.tweets.delete_tweet(tweet_id)

    deleted = run(ctx, _delete)
    format_response({"id": tweet_id, "deleted": deleted})


def me_command(ctx: typer.Context) -> None:
    """Show the user the credentials belong to."""

    async def _me(manager: CredentialManager, config: XapiConfig) -> User:
        async with ApiClient(manager, config.api_base_url, config.timeout) as client:
            return await client.users.me()

    user = run(ctx, _me)
    format_response(user.model_dump())
