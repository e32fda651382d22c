# app/database.py
import re

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Import models so SQLModel metadata is populated before create_all()
from app.models import product as _product_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401

# ---------------------------------------------------------
# Optional direct Postgres connection (Supabase pooler)
#
# Runtime traffic goes through the Supabase REST API. The engine
# is only used to create the tables on a fresh project.
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
# ---------------------------------------------------------


def build_db_url(database_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in database_url:
        return database_url
    if "?" in database_url:
        return database_url + "&sslmode=require"
    return database_url + "?sslmode=require"


def make_engine(database_url: str) -> Engine:
    return create_engine(
        build_db_url(database_url),
        echo=False,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


# ---------------------------------------------------------
# Atomic checkout function (used when CHECKOUT_RPC is set)
#
# Called through PostgREST as rpc(<name>, {p_user_id, p_items}) where
# p_items is a JSON array of {product_id, quantity, price_at_purchase}.
# In one transaction it inserts the order and its items and deletes the
# ordered products from the user's cart. Returns the order row as JSON
# with an extra `items` array holding the inserted order_items rows.
# ---------------------------------------------------------

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

PLACE_ORDER_FUNCTION_SQL = """
create or replace function public.{name}(p_user_id uuid, p_items jsonb)
returns jsonb
language plpgsql
as $$
declare
    v_order_id uuid;
    v_order jsonb;
    v_items jsonb;
begin
    if p_items is null or jsonb_array_length(p_items) = 0 then
        raise exception 'cart is empty';
    end if;

    insert into orders (id, user_id, total_amount, status, created_at)
    select gen_random_uuid(), p_user_id,
           sum((i->>'quantity')::int * (i->>'price_at_purchase')::float8),
           'confirmed', now()
    from jsonb_array_elements(p_items) as i
    returning id into v_order_id;

    with inserted as (
        insert into order_items (id, order_id, product_id, quantity, price_at_purchase)
        select gen_random_uuid(), v_order_id, (i->>'product_id')::uuid,
               (i->>'quantity')::int, (i->>'price_at_purchase')::float8
        from jsonb_array_elements(p_items) as i
        returning *
    )
    select coalesce(jsonb_agg(to_jsonb(inserted)), '[]'::jsonb) into v_items from inserted;

    delete from cart_items c
    using jsonb_array_elements(p_items) as i
    where c.user_id = p_user_id
      and c.product_id = (i->>'product_id')::uuid;

    select to_jsonb(o) into v_order from orders o where o.id = v_order_id;
    return v_order || jsonb_build_object('items', v_items);
end;
$$;
"""


def place_order_function_sql(name: str) -> str:
    """DDL for the checkout function, named as configured in CHECKOUT_RPC."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid checkout function name: {name!r}")
    return PLACE_ORDER_FUNCTION_SQL.format(name=name)


def create_db_and_tables(database_url: str, checkout_rpc: str | None = None) -> None:
    """
    Create products, cart_items, orders and order_items if they do not exist,
    plus the checkout function when checkout_rpc names one.

    Called once on application startup when DATABASE_URL is configured.
    """
    engine = make_engine(database_url)
    try:
        SQLModel.metadata.create_all(engine)
        if checkout_rpc:
            with engine.begin() as conn:
                conn.execute(text(place_order_function_sql(checkout_rpc)))
    finally:
        engine.dispose()
