"""SinaLite 商品の最低価格取得 — メインエントリーポイント.

管理画面などからのリクエストを受け取り、バッチを1回実行して集計を返す。
CLI から実行する場合は --all で残りが無くなるまで繰り返す。
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from min_price import db
from min_price.batch import run_batch
from min_price.config import DEFAULT_BATCH_SIZE, DEFAULT_STORE_CODE, LOG_DIR
from min_price.errors import ConfigurationError
from min_price.models import BatchCursor

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """ロギングの初期設定."""
    log_file = LOG_DIR / f"min_price_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def parse_cursor(body: dict | None) -> BatchCursor:
    """リクエストボディから BatchCursor を組み立てる.

    limit は batchSize の別名として受け付ける。
    """
    body = body or {}
    batch_size = body.get("batchSize") or body.get("limit") or DEFAULT_BATCH_SIZE
    return BatchCursor(
        offset=max(int(body.get("offset") or 0), 0),
        batch_size=max(int(batch_size), 1),
        force_refresh=_parse_bool(body.get("forceRefresh", False)),
        store_code=int(body.get("storeCode") or DEFAULT_STORE_CODE),
    )


def _parse_bool(value) -> bool:
    """真偽値を解釈する。文字列は "true" / "1" などのみ真とみなす."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def handle_request(body: dict | None, mode: str | None = None, env=None) -> tuple[int, dict]:
    """リクエストを処理し、(HTTP ステータス, レスポンス) を返す.

    Args:
        body: {batchSize?, limit?, storeCode?, forceRefresh?, offset?}
        mode: 認証情報モード。省略時は設定テーブルから1回だけ読む。
        env: 認証情報を読む環境変数。省略時は os.environ。
    """
    try:
        cursor = parse_cursor(body)
        if mode is None:
            mode = db.get_credential_mode()
        result = run_batch(cursor, mode, env=env)
    except ConfigurationError as e:
        logger.error("設定エラー: %s", e)
        return 200, {"success": False, "error": str(e)}
    except Exception as e:
        logger.exception("バッチ実行中にエラーが発生しました")
        return 500, {"success": False, "error": str(e) or type(e).__name__}

    return 200, result.to_response()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SinaLite 商品の最低価格を取得して products に書き込む")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, help="1回に処理する商品数")
    parser.add_argument("--store-code", type=int, default=DEFAULT_STORE_CODE, help="SinaLite のストアコード")
    parser.add_argument("--force-refresh", action="store_true", help="取得済みの商品も再取得する")
    parser.add_argument("--offset", type=int, default=0, help="強制更新時の開始位置")
    parser.add_argument("--all", action="store_true", help="残りが無くなるまで繰り返す")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """メイン処理."""
    setup_logging()
    args = parse_args(argv)
    body = {
        "batchSize": args.batch_size,
        "storeCode": args.store_code,
        "forceRefresh": args.force_refresh,
        "offset": args.offset,
    }

    logger.info("=== 最低価格取得 開始 ===")
    while True:
        status, payload = handle_request(body)
        print(json.dumps(payload, ensure_ascii=False))
        if not args.all or not payload.get("success"):
            break
        # 未解決の商品は通常モードで再選択されるため、更新が無ければ打ち切る
        if args.force_refresh:
            if payload["processed"] == 0 or payload["remaining"] == 0:
                break
            body["offset"] = payload["nextOffset"]
        elif payload["updated"] == 0 or payload["remaining"] == 0:
            break
    logger.info("=== 最低価格取得 終了 ===")

    return 0 if status == 200 and payload.get("success") else 1


if __name__ == "__main__":
    sys.exit(run())
