"""最低価格取得ジョブの例外定義."""


class MinPriceError(Exception):
    """本パッケージの例外の基底クラス."""


class ConfigurationError(MinPriceError):
    """認証情報などの必須設定が欠けている.

    呼び出し全体を中断するが、呼び出し元には success=false として返す。
    """


class AuthError(MinPriceError):
    """OAuth トークン交換に失敗した."""


class InvalidOptions(MinPriceError):
    """ベンダーのオプション一覧が空、または想定外の形式だった.

    該当商品のみスキップし、バッチは継続する。
    """


class PersistenceError(MinPriceError):
    """商品行の更新に失敗した."""
