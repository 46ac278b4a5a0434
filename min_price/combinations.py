"""価格を問い合わせる組み合わせの生成.

数量（qty）は最小のものに固定し、残りのグループ（サイズを含む）の直積を取る。
直積が上限を超える場合は、先頭から切り詰めず一様ランダムに抽出する。
"""

from __future__ import annotations

import logging
import math
import random
import re

from min_price.config import COMBINATION_CAP, QTY_GROUP
from min_price.models import Option

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*(\d+)")


def _quantity_sort_key(option: Option) -> tuple[int, int]:
    m = _LEADING_INT.match(option.name.replace(",", ""))
    if m:
        return (0, int(m.group(1)))
    return (1, 0)  # 数値でない名前は末尾


def sort_quantities(options: list[Option]) -> list[Option]:
    """数量オプションを数値の昇順に並べる（数値でない名前は末尾、安定ソート）."""
    return sorted(options, key=_quantity_sort_key)


def baseline_quantity(groups: dict[str, list[Option]]) -> int | None:
    """最小数量のオプション ID を返す。qty グループが無ければ None."""
    quantities = sort_quantities(groups.get(QTY_GROUP, []))
    return quantities[0].id if quantities else None


def variable_groups(groups: dict[str, list[Option]]) -> list[list[Option]]:
    """qty 以外で選択肢を持つグループを、レスポンス内の出現順に返す."""
    return [options for name, options in groups.items() if name != QTY_GROUP and options]


def generate_combinations(
    groups: dict[str, list[Option]],
    cap: int = COMBINATION_CAP,
    rng: random.Random | None = None,
) -> list[tuple[int, ...]]:
    """問い合わせ対象の組み合わせ（qty を含まない）を返す.

    件数は min(cap, 直積の総数)。可変グループが1つも無ければ空リスト。

    Args:
        groups: グループ名 -> Option リスト
        cap: 組み合わせ数の上限
        rng: 抽出に使う乱数源。テストでは seed 固定のものを渡す。
    """
    variables = variable_groups(groups)
    if not variables:
        return []

    total = math.prod(len(options) for options in variables)
    if total <= cap:
        return cartesian_product(variables)

    rng = rng or random.Random()
    # 直積を展開せず、混合基数のインデックス空間から重複なしで抽出する
    indices = rng.sample(range(total), cap)
    logger.info("組み合わせ %d 件から %d 件を抽出", total, cap)
    return [_combination_at(variables, index) for index in indices]


def cartesian_product(variables: list[list[Option]]) -> list[tuple[int, ...]]:
    """各グループから1つずつ選んだ ID の組をすべて列挙する."""
    if not variables:
        return [()]
    head, rest = variables[0], cartesian_product(variables[1:])
    return [(option.id,) + tail for option in head for tail in rest]


def _combination_at(variables: list[list[Option]], index: int) -> tuple[int, ...]:
    # cartesian_product と同じ順序（先頭グループが最上位桁）
    ids: list[int] = []
    for options in reversed(variables):
        index, digit = divmod(index, len(options))
        ids.append(options[digit].id)
    return tuple(reversed(ids))


def total_combinations(groups: dict[str, list[Option]]) -> int:
    variables = variable_groups(groups)
    return math.prod(len(options) for options in variables) if variables else 0
