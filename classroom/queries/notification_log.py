"""Notification audit log and scheduler lease queries."""

from datetime import datetime, timedelta

from sqlalchemy import insert, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import notification_log, scheduler_leases


async def insert_notification_logs(conn: AsyncConnection, entries: list[dict]) -> None:
    """
    Append audit rows.

    Each entry carries user_id, type, title, body, data (JSON text),
    live_class_id and sent_at.
    """
    if not entries:
        return
    await conn.execute(insert(notification_log), entries)


async def claim_lease(
    conn: AsyncConnection,
    name: str,
    owner: str,
    now: datetime,
    ttl_seconds: int,
) -> bool:
    """
    Claim or renew a named lease.

    Succeeds when the row is missing, expired, or already held by owner.

    Returns:
        True if owner holds the lease after this call
    """
    expires_at = now + timedelta(seconds=ttl_seconds)
    stmt = pg_insert(scheduler_leases).values(
        name=name, owner=owner, expires_at=expires_at
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[scheduler_leases.c.name],
        set_={"owner": owner, "expires_at": expires_at},
        where=or_(
            scheduler_leases.c.expires_at < now,
            scheduler_leases.c.owner == owner,
        ),
    ).returning(scheduler_leases.c.owner)
    result = await conn.execute(stmt)
    return result.first() is not None
