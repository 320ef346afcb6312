"""Device token and enrollment queries used for push delivery."""

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import DevicePlatform
from ..tables import device_tokens, enrollments


async def get_enrolled_user_ids(conn: AsyncConnection, course_id: int) -> list[int]:
    """Get user IDs for everyone enrolled in a course."""
    result = await conn.execute(
        select(enrollments.c.user_id).where(enrollments.c.course_id == course_id)
    )
    return [row.user_id for row in result]


async def get_enrolled_course_ids(conn: AsyncConnection, user_id: int) -> list[int]:
    """Get course IDs the user is enrolled in."""
    result = await conn.execute(
        select(enrollments.c.course_id).where(enrollments.c.user_id == user_id)
    )
    return [row.course_id for row in result]


async def is_enrolled(conn: AsyncConnection, user_id: int, course_id: int) -> bool:
    result = await conn.execute(
        select(enrollments.c.enrollment_id)
        .where(enrollments.c.user_id == user_id)
        .where(enrollments.c.course_id == course_id)
        .limit(1)
    )
    return result.first() is not None


async def get_device_tokens(conn: AsyncConnection, user_ids: list[int]) -> list[dict]:
    """
    Get every registered device token for the given users.

    Returns:
        List of {"user_id", "token"} dicts
    """
    if not user_ids:
        return []
    result = await conn.execute(
        select(device_tokens.c.user_id, device_tokens.c.token).where(
            device_tokens.c.user_id.in_(user_ids)
        )
    )
    return [dict(row) for row in result.mappings()]


async def upsert_device_token(
    conn: AsyncConnection,
    user_id: int,
    token: str,
    platform: DevicePlatform = DevicePlatform.android,
) -> None:
    """Register a token, refreshing platform/updated_at if it already exists."""
    stmt = pg_insert(device_tokens).values(
        user_id=user_id,
        token=token,
        platform=platform,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[device_tokens.c.user_id, device_tokens.c.token],
        set_={"platform": stmt.excluded.platform, "updated_at": func.now()},
    )
    await conn.execute(stmt)


async def delete_user_device_token(
    conn: AsyncConnection,
    user_id: int,
    token: str,
) -> int:
    """Remove one of the user's tokens (logout). Returns rows deleted."""
    result = await conn.execute(
        delete(device_tokens)
        .where(device_tokens.c.user_id == user_id)
        .where(device_tokens.c.token == token)
    )
    return result.rowcount


async def delete_device_tokens(conn: AsyncConnection, tokens: list[str]) -> int:
    """Remove tokens regardless of owner. Returns rows deleted."""
    if not tokens:
        return 0
    result = await conn.execute(
        delete(device_tokens).where(device_tokens.c.token.in_(tokens))
    )
    return result.rowcount
