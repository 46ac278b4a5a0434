"""Supabase データベース操作モジュール.

products テーブルの価格関連カラムと、app_settings の認証モード設定を扱う。
"""

from __future__ import annotations

import logging
from functools import lru_cache

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from min_price.config import (
    DEFAULT_MODE,
    MODE_SETTING_KEY,
    SENTINEL_PRICE_CENTS,
    SUPABASE_SECRET_KEY,
    SUPABASE_URL,
    VENDOR,
)
from min_price.errors import ConfigurationError, PersistenceError
from min_price.models import PriceQuote, Product, variant_key

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, vendor_product_id, name, min_price_cents, base_cost_cents, min_price_variant_key"

# 価格が未取得（NULL またはプレースホルダ）の行
UNENRICHED_FILTER = f"min_price_cents.is.null,min_price_cents.eq.{SENTINEL_PRICE_CENTS}"


@lru_cache(maxsize=1)
def _get_client() -> Client:
    if not SUPABASE_URL or not SUPABASE_SECRET_KEY:
        raise ConfigurationError("SUPABASE_URL / SUPABASE_SECRET_KEY are not set")
    return create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)


def _table(name: str):
    """テーブルを参照する."""
    return _get_client().table(name)


def get_credential_mode() -> str:
    """設定テーブルから現在の認証モードを取得する.

    取得できない場合は "test" を返す。
    """
    try:
        resp = (
            _table("app_settings")
            .select("value")
            .eq("key", MODE_SETTING_KEY)
            .limit(1)
            .execute()
        )
    except (APIError, httpx.HTTPError) as e:
        logger.error("認証モードの取得に失敗。%s を使用します: %s", DEFAULT_MODE, e)
        return DEFAULT_MODE

    rows = resp.data or []
    mode = rows[0].get("value") if rows else None
    return mode or DEFAULT_MODE


def fetch_unenriched_products(limit: int) -> list[Product]:
    """最低価格が未取得の商品を id 順に最大 limit 件取得する."""
    resp = (
        _table("products")
        .select(PRODUCT_COLUMNS)
        .eq("vendor", VENDOR)
        .or_(UNENRICHED_FILTER)
        .order("id")
        .limit(limit)
        .execute()
    )
    return [Product.from_row(row) for row in resp.data or []]


def fetch_products_page(offset: int, limit: int) -> list[Product]:
    """価格の状態に関係なく、id 順で [offset, offset + limit) の商品を取得する."""
    resp = (
        _table("products")
        .select(PRODUCT_COLUMNS)
        .eq("vendor", VENDOR)
        .order("id")
        .range(offset, offset + limit - 1)
        .execute()
    )
    return [Product.from_row(row) for row in resp.data or []]


def count_products(unenriched_only: bool = False) -> int:
    """対象ベンダーの商品数を数える."""
    query = _table("products").select("id", count="exact").eq("vendor", VENDOR)
    if unenriched_only:
        query = query.or_(UNENRICHED_FILTER)
    resp = query.limit(1).execute()
    return resp.count or 0


def update_min_price(product_id: str, quote: PriceQuote) -> None:
    """最低価格・原価・バリアントキーの3カラムを1回の更新で書き込む.

    同じ値での再実行は同じ結果になる。

    Raises:
        PersistenceError: 更新に失敗した、または対象行が無い場合
    """
    values = {
        "min_price_cents": quote.price_cents,
        "base_cost_cents": quote.price_cents,
        "min_price_variant_key": variant_key(quote.combination),
    }
    try:
        resp = _table("products").update(values).eq("id", product_id).execute()
    except APIError as e:
        raise PersistenceError(f"Update failed for product {product_id}: {e}") from e

    if not resp.data:
        raise PersistenceError(f"No product row updated: {product_id}")
    logger.info("products 更新: id=%s, %s", product_id, values)
