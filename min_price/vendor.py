"""SinaLite API クライアント.

オプション一覧取得と、1組み合わせ単位の価格見積もりを扱う。

価格の抽出戦略（先に見つかった正の値を採用）:
  1. レスポンス直下の price → unit_price → total_price
  2. pricing オブジェクト内の同フィールド
  3. data オブジェクト内の同フィールド
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import requests
from requests.adapters import HTTPAdapter

from min_price.config import OTHER_GROUP, REQUEST_TIMEOUT, WAVE_SIZE
from min_price.errors import InvalidOptions
from min_price.models import Option, PriceQuote

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("price", "unit_price", "total_price")
_PRICE_CONTAINERS: tuple[tuple[str, ...], ...] = ((), ("pricing",), ("data",))

# (コンテナのパス, フィールド名) を優先順に並べたもの
PRICE_STRATEGIES: tuple[tuple[tuple[str, ...], str], ...] = tuple(
    (path, name) for path in _PRICE_CONTAINERS for name in PRICE_FIELDS
)


def create_session(pool_size: int = WAVE_SIZE) -> requests.Session:
    """ウェーブ幅に合わせたコネクションプールを持つセッションを作る."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["Content-Type"] = "application/json"
    return session


class VendorClient:
    """認証済みセッションで SinaLite API を呼び出す."""

    def __init__(self, session: requests.Session, api_base_url: str, store_code: int):
        self.session = session
        self.api_base_url = api_base_url.rstrip("/")
        self.store_code = store_code

    def authorize(self, access_token: str) -> None:
        self.session.headers["Authorization"] = f"Bearer {access_token}"

    def fetch_option_groups(self, vendor_product_id: str) -> dict[str, list[Option]]:
        """商品のオプションをグループ名ごとにまとめて返す.

        Raises:
            InvalidOptions: レスポンスが空、または想定外の形式の場合
            requests.RequestException: 通信失敗
        """
        url = f"{self.api_base_url}/product/{vendor_product_id}/{self.store_code}"
        resp = self.session.get(url, timeout=REQUEST_TIMEOUT)
        if not resp.ok:
            raise InvalidOptions(f"Options fetch failed: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise InvalidOptions("Options response is not JSON") from e

        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            raise InvalidOptions("Invalid options response")

        groups = group_options(data[0])
        if not groups:
            raise InvalidOptions("Options response has no usable descriptors")
        return groups

    def quote(self, vendor_product_id: str, option_ids: Iterable[int]) -> PriceQuote | None:
        """1組み合わせの価格を問い合わせる.

        失敗・価格なしはいずれもログに残して None を返す（例外は投げない）。
        """
        combination = tuple(option_ids)
        url = f"{self.api_base_url}/price/{vendor_product_id}/{self.store_code}"
        try:
            resp = self.session.post(
                url, json={"productOptions": list(combination)}, timeout=REQUEST_TIMEOUT
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            logger.warning("価格取得失敗: product=%s, options=%s, error=%s", vendor_product_id, combination, e)
            return None
        except ValueError:
            logger.warning("価格レスポンスが JSON ではありません: product=%s, options=%s", vendor_product_id, combination)
            return None

        price = extract_price(data)
        try:
            price_cents = to_cents(price) if price is not None else 0
        except InvalidOperation:
            logger.warning("価格を変換できません: product=%s, options=%s, price=%s", vendor_product_id, combination, price)
            return None
        if price_cents <= 0:
            logger.debug("有効な価格なし: product=%s, options=%s", vendor_product_id, combination)
            return None
        return PriceQuote(combination=combination, price_cents=price_cents)


def group_options(descriptors: list) -> dict[str, list[Option]]:
    """{id, name, group} の配列をグループ名 -> Option リストにまとめる.

    group の無い項目は "other" に入れる。id の無い項目、group が文字列でない項目は捨てる。
    """
    groups: dict[str, list[Option]] = {}
    for desc in descriptors:
        if not isinstance(desc, dict):
            continue
        try:
            option_id = int(desc["id"])
        except (KeyError, TypeError, ValueError):
            logger.debug("id の無いオプションを無視: %s", desc)
            continue
        group = desc.get("group") or OTHER_GROUP
        if not isinstance(group, str):
            logger.debug("group が文字列でないオプションを無視: %s", desc)
            continue
        groups.setdefault(group, []).append(Option(id=option_id, name=str(desc.get("name") or "")))
    return groups


def extract_price(data) -> Decimal | None:
    """価格レスポンスから最初に見つかった正の価格（ドル）を取り出す."""
    for path, name in PRICE_STRATEGIES:
        container = _deep_get(data, *path)
        if not isinstance(container, dict):
            continue
        price = _parse_positive(container.get(name))
        if price is not None:
            return price
    return None


def to_cents(price: Decimal) -> int:
    """ドル建て価格をセントに変換する（四捨五入）."""
    return int((price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_positive(value) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def _deep_get(d, *keys: str):
    """ネストされた dict から安全に値を取得する."""
    for key in keys:
        if not isinstance(d, dict):
            return None
        d = d.get(key)
    return d
