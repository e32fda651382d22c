# app/core/supabase_client.py
from supabase import acreate_client, AsyncClient

from app.core.config import Settings


async def supabase_public(settings: Settings) -> AsyncClient:
    """
    Create an async Supabase client with the anon/public key.

    Note: This client still respects RLS, so cart queries only work
    if the caller's JWT is attached (client.postgrest.auth(token)).
    """
    return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


async def supabase_admin(settings: Settings) -> AsyncClient:
    """
    Create an async Supabase client with the service role key.

    Use cases:
      - cart / order row operations on behalf of a verified user
        (every query is filtered by user_id in the gateways)

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.

    Raises:
        RuntimeError: if SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_SERVICE_ROLE_KEY in .env")
    return await acreate_client(
        settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
    )


async def create_store_client(settings: Settings) -> AsyncClient:
    """
    Client used by the cart/order gateways.

    Falls back to the anon key when no service role key is configured,
    which only works against projects without RLS on the cart tables.
    """
    if settings.SUPABASE_SERVICE_ROLE_KEY:
        return await supabase_admin(settings)
    return await supabase_public(settings)
