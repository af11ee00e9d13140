"""
Redis-backed blocklist for revoked access tokens.

Logout stores the token's ``jti`` under "auth:revoked:{jti}" with a TTL equal
to the token's remaining lifetime, so the keyspace cleans itself up.

Redis is optional. When it is disabled or unreachable, revocation is skipped
(logged) and every token is treated as not revoked; expiry still bounds the
lifetime of a token.
"""

from typing import Optional

import redis.asyncio as redis
from event_management.core.config import get_settings
from event_management.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_key(jti: str) -> str:
    return f"auth:revoked:{jti}"


async def revoke_token(jti: str, ttl_seconds: int) -> bool:
    """Add a token id to the blocklist. Returns False when it could not be stored."""
    if ttl_seconds <= 0:
        # Already expired, nothing to block
        return True

    client = await get_redis()
    if not client:
        logger.warning("token_revocation_skipped", jti=jti, reason="redis_unavailable")
        return False

    try:
        await client.setex(_make_key(jti), ttl_seconds, "1")
        logger.info("token_revoked", jti=jti, ttl=ttl_seconds)
        return True
    except Exception as e:
        logger.error("token_revocation_error", jti=jti, error=str(e))
        return False


async def is_token_revoked(jti: str) -> bool:
    client = await get_redis()
    if not client:
        return False

    try:
        return await client.exists(_make_key(jti)) > 0
    except Exception as e:
        logger.error("token_blocklist_lookup_error", jti=jti, error=str(e))
        return False


async def get_blocklist_status() -> dict:
    """Report Redis availability for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled" if not settings.REDIS_ENABLED else "unavailable"}

    try:
        await client.ping()
        return {"status": "connected"}
    except Exception as e:
        return {"status": "error", "error": str(e)}
