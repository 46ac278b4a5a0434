"""最低価格取得バッチのオーケストレーション.

処理フロー:
  1. 認証情報を解決（欠けていればネットワーク I/O 前に中断）
  2. OAuth でアクセストークンを取得
  3. 対象商品を id 順に batch_size 件選ぶ
     - 通常: 価格未取得の行
     - 強制更新: [offset, offset + batch_size) の行
  4. 商品ごとに順番に
     オプション取得 → 組み合わせ生成 → ウェーブ単位の価格問い合わせ
     → 最低価格選択 → （取れなければ）フォールバック → 書き込み
  5. 件数を集計し、次回呼び出し用のオフセットを返す
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Mapping

import requests

from min_price import db
from min_price.auth import fetch_access_token
from min_price.combinations import baseline_quantity, generate_combinations, total_combinations
from min_price.config import COMBINATION_CAP, WAVE_SIZE
from min_price.credentials import resolve_credentials
from min_price.errors import InvalidOptions, PersistenceError
from min_price.models import BatchCursor, BatchResult, Credentials, PriceQuote, Product
from min_price.prober import MinimumSelector, fallback_probe, probe_combinations
from min_price.vendor import VendorClient, create_session

logger = logging.getLogger(__name__)


def resolve_product(
    client: VendorClient,
    product: Product,
    rng: random.Random | None = None,
    cap: int = COMBINATION_CAP,
    wave_size: int = WAVE_SIZE,
) -> PriceQuote | None:
    """商品1件の最低価格を求める.

    Returns:
        最低価格の見積もり。求まらなければ None。

    Raises:
        InvalidOptions: オプション一覧が不正な場合
        requests.RequestException: オプション取得の通信失敗
    """
    product_id = product.vendor_product_id
    groups = client.fetch_option_groups(product_id)
    logger.info("%s のグループ: %s", product.name, ", ".join(groups))

    baseline_qty_id = baseline_quantity(groups)
    combinations = generate_combinations(groups, cap=cap, rng=rng)
    logger.info(
        "%s: 全 %d 件中 %d 件の組み合わせを問い合わせ (qty=%s)",
        product.name, total_combinations(groups), len(combinations), baseline_qty_id,
    )

    selector = MinimumSelector()
    probe_combinations(client, product_id, baseline_qty_id, combinations, selector, wave_size=wave_size)

    if not selector.resolved:
        fallback_probe(client, product_id, baseline_qty_id, groups, selector)

    return selector.best


def run_batch(
    cursor: BatchCursor,
    mode: str,
    env: Mapping[str, str] | None = None,
    session: requests.Session | None = None,
    rng: random.Random | None = None,
) -> BatchResult:
    """1回分のバッチを実行する.

    Args:
        cursor: 再開用の状態（offset / batch_size / force_refresh / store_code）
        mode: 認証情報モード（"test" or "live"）
        env: 認証情報を読む環境変数。省略時は os.environ。
        session: HTTP セッション。省略時は新規作成。
        rng: 組み合わせ抽出の乱数源

    Raises:
        ConfigurationError: 認証情報が不足している場合
        AuthError: トークン取得に失敗した場合
    """
    credentials = resolve_credentials(mode, env)

    if session is not None:
        return _run(cursor, credentials, session, rng)
    with create_session() as owned_session:
        return _run(cursor, credentials, owned_session, rng)


def _run(
    cursor: BatchCursor,
    credentials: Credentials,
    session: requests.Session,
    rng: random.Random | None,
) -> BatchResult:
    start_time = time.time()
    client = VendorClient(session, credentials.api_base_url, cursor.store_code)
    client.authorize(fetch_access_token(credentials, session))

    if cursor.force_refresh:
        products = db.fetch_products_page(cursor.offset, cursor.batch_size)
    else:
        products = db.fetch_unenriched_products(cursor.batch_size)

    result = BatchResult(total=db.count_products())
    if not products:
        logger.info("処理対象の商品がありません (offset=%d, force_refresh=%s)", cursor.offset, cursor.force_refresh)
        result.next_offset = cursor.offset if cursor.force_refresh else 0
        result.remaining = 0 if cursor.force_refresh else db.count_products(unenriched_only=True)
        return result

    logger.info("%d 件の商品を処理します (mode=%s)", len(products), credentials.mode)

    # 商品は1件ずつ順番に処理する
    for product in products:
        result.processed += 1
        if _process_product(client, product, rng):
            result.updated += 1
        else:
            result.failed_products.append(product.name or product.id)

    result.errors = result.processed - result.updated
    if cursor.force_refresh:
        result.next_offset = cursor.offset + result.processed
        # 件数が並行して変わる可能性があるため目安の値
        result.remaining = max(result.total - cursor.offset - result.processed, 0)
    else:
        result.next_offset = 0
        result.remaining = db.count_products(unenriched_only=True)

    elapsed = time.time() - start_time
    logger.info(
        "完了: 処理 %d 件, 更新 %d 件, エラー %d 件, 残り %d 件, 所要時間: %.1f 秒",
        result.processed, result.updated, result.errors, result.remaining, elapsed,
    )
    if result.failed_products:
        logger.info("未解決の商品: %s", ", ".join(result.failed_products))
    return result


def _process_product(client: VendorClient, product: Product, rng: random.Random | None) -> bool:
    """商品1件を処理し、書き込めたら True を返す."""
    try:
        best = resolve_product(client, product, rng=rng)
    except InvalidOptions as e:
        logger.error("オプション不正のためスキップ: %s (%s)", product.name, e)
        return False
    except requests.RequestException as e:
        logger.error("オプション取得失敗のためスキップ: %s (%s)", product.name, e)
        return False
    except Exception:
        logger.exception("商品の処理中にエラーが発生したためスキップ: %s", product.name)
        return False

    if best is None:
        logger.warning("✗ %s: 有効な価格が見つかりませんでした", product.name)
        return False

    try:
        db.update_min_price(product.id, best)
    except PersistenceError as e:
        logger.error("書き込み失敗: %s (%s)", product.name, e)
        return False

    logger.info("✓ %s: $%.2f", product.name, best.price_cents / 100)
    return True
