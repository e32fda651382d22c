"""
Tests for table definitions, cart row parsing and settings.
"""
import uuid

import pytest
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.database import build_db_url, place_order_function_sql
from app.schemas.cart import CartLine


class TestTables:
    """Test the collections registered in SQLModel metadata."""

    def test_all_collections_defined(self):
        tables = SQLModel.metadata.tables
        assert {"products", "cart_items", "orders", "order_items"} <= set(tables)

    def test_collection_columns(self):
        tables = SQLModel.metadata.tables
        assert set(tables["cart_items"].columns.keys()) == {"id", "user_id", "product_id", "quantity"}
        assert set(tables["orders"].columns.keys()) == {
            "id", "user_id", "total_amount", "status", "created_at",
        }
        assert set(tables["order_items"].columns.keys()) == {
            "id", "order_id", "product_id", "quantity", "price_at_purchase",
        }
        assert {"name", "price", "image_url", "category", "stock"} <= set(
            tables["products"].columns.keys()
        )

    def test_cart_item_unique_per_user_and_product(self):
        constraints = SQLModel.metadata.tables["cart_items"].constraints
        unique_columns = [
            {c.name for c in con.columns}
            for con in constraints
            if con.__class__.__name__ == "UniqueConstraint"
        ]
        assert {"user_id", "product_id"} in unique_columns


class TestBuildDbUrl:
    """Test sslmode handling for the bootstrap engine."""

    def test_appends_sslmode(self):
        assert build_db_url("postgresql://u:p@h/db") == "postgresql://u:p@h/db?sslmode=require"

    def test_appends_to_existing_query(self):
        assert build_db_url("postgresql://h/db?x=1") == "postgresql://h/db?x=1&sslmode=require"

    def test_keeps_explicit_sslmode(self):
        assert build_db_url("postgresql://h/db?sslmode=disable") == "postgresql://h/db?sslmode=disable"


class TestCheckoutFunctionSql:
    """Test the DDL for the atomic checkout function."""

    def test_uses_configured_name_and_parameters(self):
        sql = place_order_function_sql("place_order")
        assert "function public.place_order(p_user_id uuid, p_items jsonb)" in sql
        assert "returns jsonb" in sql
        assert "delete from cart_items" in sql
        assert "jsonb_build_object('items', v_items)" in sql

    @pytest.mark.parametrize("name", ["", "place order", "x; drop table orders", "1place"])
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(ValueError):
            place_order_function_sql(name)


class TestCartLine:
    """Test parsing of joined cart rows."""

    def test_from_row(self):
        item_id, product_id = uuid.uuid4(), uuid.uuid4()
        line = CartLine.from_row(
            {
                "id": str(item_id),
                "product_id": str(product_id),
                "quantity": 3,
                "products": {"id": str(product_id), "name": "Mug", "price": 12.5, "image_url": None},
            }
        )
        assert line.id == item_id
        assert line.line_total == 37.5

    def test_from_row_without_product(self):
        with pytest.raises(ValueError):
            CartLine.from_row({"id": "x", "product_id": "y", "quantity": 1, "products": None})

    def test_lines_are_frozen(self):
        product_id = uuid.uuid4()
        line = CartLine.from_row(
            {
                "id": str(uuid.uuid4()),
                "product_id": str(product_id),
                "quantity": 1,
                "products": {"id": str(product_id), "name": "Mug", "price": 1.0},
            }
        )
        with pytest.raises(Exception):
            line.quantity = 5


def test_settings_defaults():
    settings = get_settings()
    assert settings.API_V1_STR == "/api/v1"
    assert settings.SUPABASE_JWT_ALG == "HS256"
    assert settings.CHECKOUT_RPC is None
    assert settings.CART_CACHE_SIZE == 1000
