"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Supabase ---
SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.environ.get("SUPABASE_SECRET_KEY", "")

# --- 対象ベンダー ---
VENDOR = "sinalite"

# --- バッチ既定値 ---
DEFAULT_BATCH_SIZE = 20
DEFAULT_STORE_CODE = 9

# 未取得を示すプレースホルダ価格（セント）
SENTINEL_PRICE_CENTS = 2000

# --- 組み合わせ探索 ---
COMBINATION_CAP = 50
WAVE_SIZE = 30  # 同時リクエスト数

QTY_GROUP = "qty"
SIZE_GROUP = "size"
OTHER_GROUP = "other"

# --- 認証情報モード ---
MODE_SETTING_KEY = "stripe_mode"
DEFAULT_MODE = "test"
MODES = ("test", "live")

API_BASE_URLS = {
    "test": "https://api.sinaliteuppy.com",
    "live": "https://liveapi.sinalite.com",
}

# --- リクエスト設定 ---
REQUEST_TIMEOUT = 15  # 秒

# --- ログ ---
LOG_DIR = _PROJECT_ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)
