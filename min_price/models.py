"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Product:
    """products テーブルの1行（価格関連カラムのみ）."""

    id: str  # uuid
    vendor_product_id: str
    name: str
    min_price_cents: int | None = None
    base_cost_cents: int | None = None
    min_price_variant_key: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> Product:
        return cls(
            id=row["id"],
            vendor_product_id=str(row["vendor_product_id"]),
            name=row.get("name") or "",
            min_price_cents=row.get("min_price_cents"),
            base_cost_cents=row.get("base_cost_cents"),
            min_price_variant_key=row.get("min_price_variant_key"),
        )


@dataclass(frozen=True)
class Option:
    """オプショングループ内の1選択肢."""

    id: int  # ベンダー採番のオプション ID
    name: str


@dataclass(frozen=True)
class Credentials:
    """1つのモード（test / live）に対応するベンダー認証情報."""

    mode: str
    client_id: str
    client_secret: str
    auth_url: str
    api_base_url: str
    audience: str


@dataclass(frozen=True)
class PriceQuote:
    """1組み合わせに対する見積もり結果."""

    combination: tuple[int, ...]  # 送信した productOptions（数量込み）
    price_cents: int


@dataclass
class BatchCursor:
    """呼び出し間で持ち回す再開用の状態."""

    offset: int = 0
    batch_size: int = 20
    force_refresh: bool = False
    store_code: int = 9


@dataclass
class BatchResult:
    """1回のバッチ呼び出しの集計結果."""

    processed: int = 0
    updated: int = 0
    errors: int = 0
    remaining: int = 0
    next_offset: int = 0
    total: int = 0
    failed_products: list[str] = field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "success": True,
            "processed": self.processed,
            "updated": self.updated,
            "errors": self.errors,
            "remaining": self.remaining,
            "nextOffset": self.next_offset,
            "total": self.total,
        }


def variant_key(combination) -> str:
    """組み合わせをソート済み ID の "-" 連結に正規化する."""
    return "-".join(str(option_id) for option_id in sorted(combination))
