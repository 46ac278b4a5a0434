"""組み合わせごとの価格問い合わせと最低価格の選択."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor

from min_price.config import SIZE_GROUP, WAVE_SIZE
from min_price.models import Option, PriceQuote
from min_price.vendor import VendorClient

logger = logging.getLogger(__name__)


class MinimumSelector:
    """商品1件分の最低価格を保持する.

    同額の場合は先に見つかった組み合わせを残す。
    """

    def __init__(self) -> None:
        self.price_cents: float = math.inf
        self.combination: tuple[int, ...] = ()

    def offer(self, quote: PriceQuote | None) -> bool:
        """見積もりを評価し、最低価格を更新したら True を返す."""
        if quote is None or quote.price_cents <= 0:
            return False
        if quote.price_cents < self.price_cents:
            self.price_cents = quote.price_cents
            self.combination = quote.combination
            return True
        return False

    @property
    def resolved(self) -> bool:
        return bool(self.combination) and self.price_cents < math.inf

    @property
    def best(self) -> PriceQuote | None:
        if not self.resolved:
            return None
        return PriceQuote(combination=self.combination, price_cents=int(self.price_cents))


def with_baseline(baseline_qty_id: int | None, combination: tuple[int, ...]) -> tuple[int, ...]:
    """組み合わせの先頭に基準数量 ID を付ける."""
    if baseline_qty_id is None:
        return combination
    return (baseline_qty_id,) + combination


def probe_combinations(
    client: VendorClient,
    vendor_product_id: str,
    baseline_qty_id: int | None,
    combinations: list[tuple[int, ...]],
    selector: MinimumSelector,
    wave_size: int = WAVE_SIZE,
) -> int:
    """組み合わせをウェーブ単位で並列に問い合わせ、selector に反映する.

    ウェーブ内のリクエストがすべて終わってから次のウェーブを開始する。
    結果は投入順に評価するので、同額時の採用は入力順で決まる。

    Returns:
        価格が取れた組み合わせの数
    """
    payloads = [with_baseline(baseline_qty_id, combo) for combo in combinations]
    succeeded = 0

    with ThreadPoolExecutor(max_workers=max(1, min(wave_size, len(payloads) or 1))) as executor:
        for start in range(0, len(payloads), wave_size):
            wave = payloads[start:start + wave_size]
            # map は全件の完了を待ってから返る
            quotes = list(executor.map(lambda options: client.quote(vendor_product_id, options), wave))
            for quote in quotes:
                if quote is not None:
                    succeeded += 1
                    selector.offer(quote)
            logger.debug(
                "ウェーブ完了: product=%s, %d-%d / %d, 成功=%d",
                vendor_product_id, start + 1, start + len(wave), len(payloads), succeeded,
            )

    return succeeded


def fallback_probe(
    client: VendorClient,
    vendor_product_id: str,
    baseline_qty_id: int | None,
    groups: dict[str, list[Option]],
    selector: MinimumSelector,
) -> bool:
    """基準数量 + 先頭サイズで1回だけ問い合わせる.

    qty グループと size グループの両方がある場合のみ問い合わせる。

    Returns:
        価格が取れたら True
    """
    sizes = groups.get(SIZE_GROUP, [])
    if baseline_qty_id is None or not sizes:
        return False
    options = (baseline_qty_id, sizes[0].id)

    logger.info("フォールバック問い合わせ: product=%s, options=%s", vendor_product_id, options)
    return selector.offer(client.quote(vendor_product_id, options))
