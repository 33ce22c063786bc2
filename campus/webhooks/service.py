"""Owner-scoped webhook management: create, list, update, toggle, delete."""

import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from ..database import get_connection, get_transaction
from ..errors import InvalidWebhookUrlError, NotFoundError
from ..models import Recipient
from ..queries import webhooks as webhook_queries
from .signing import generate_webhook_secret

logger = logging.getLogger(__name__)


def validate_webhook_url(url: str) -> str:
    """
    Accept only absolute http(s) URLs with a host.

    Raises:
        InvalidWebhookUrlError: If the URL can't be used as a delivery target
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidWebhookUrlError(f"Invalid webhook URL: {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidWebhookUrlError(f"Webhook URL must be http(s): {url}")
    return str(parsed)


async def create_webhook(
    engine: AsyncEngine,
    owner: Recipient,
    url: str,
) -> dict[str, Any]:
    """
    Register a webhook for the owner.

    The returned dict is the only place the secret is ever exposed.
    """
    url = validate_webhook_url(url)
    secret = generate_webhook_secret()
    async with get_transaction(engine) as conn:
        webhook = await webhook_queries.insert_webhook(conn, owner, url, secret)
    logger.info(f"Created webhook {webhook['webhook_id']} for {owner.kind.value} {owner.id}")
    return webhook


async def list_webhooks(engine: AsyncEngine, owner: Recipient) -> list[dict[str, Any]]:
    async with get_connection(engine) as conn:
        return await webhook_queries.list_webhooks_for_owner(conn, owner)


async def get_webhook(
    engine: AsyncEngine,
    owner: Recipient,
    webhook_id: str,
) -> dict[str, Any]:
    async with get_connection(engine) as conn:
        webhook = await webhook_queries.get_webhook_for_owner(conn, webhook_id, owner)
    if webhook is None:
        raise NotFoundError(f"Webhook {webhook_id} not found")
    return webhook


async def update_webhook_url(
    engine: AsyncEngine,
    owner: Recipient,
    webhook_id: str,
    url: str,
) -> dict[str, Any]:
    url = validate_webhook_url(url)
    async with get_transaction(engine) as conn:
        updated = await webhook_queries.update_webhook_for_owner(
            conn, webhook_id, owner, url=url
        )
        if not updated:
            raise NotFoundError(f"Webhook {webhook_id} not found")
        return await webhook_queries.get_webhook_for_owner(conn, webhook_id, owner)


async def toggle_webhook(
    engine: AsyncEngine,
    owner: Recipient,
    webhook_id: str,
) -> dict[str, Any]:
    """Flip is_active and return the updated webhook."""
    async with get_transaction(engine) as conn:
        webhook = await webhook_queries.get_webhook_for_owner(conn, webhook_id, owner)
        if webhook is None:
            raise NotFoundError(f"Webhook {webhook_id} not found")
        await webhook_queries.update_webhook_for_owner(
            conn, webhook_id, owner, is_active=not webhook["is_active"]
        )
        return await webhook_queries.get_webhook_for_owner(conn, webhook_id, owner)


async def delete_webhook(
    engine: AsyncEngine,
    owner: Recipient,
    webhook_id: str,
) -> None:
    async with get_transaction(engine) as conn:
        deleted = await webhook_queries.delete_webhook_for_owner(conn, webhook_id, owner)
    if not deleted:
        raise NotFoundError(f"Webhook {webhook_id} not found")
    logger.info(f"Deleted webhook {webhook_id}")
