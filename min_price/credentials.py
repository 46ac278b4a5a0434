"""ベンダー認証情報の解決モジュール.

モード（test / live）ごとに環境変数から認証情報を組み立てる。
2つのモードの値を混在させないよう、サフィックスはモードから一度だけ決める。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from min_price.config import API_BASE_URLS, MODES
from min_price.errors import ConfigurationError
from min_price.models import Credentials

logger = logging.getLogger(__name__)

_REQUIRED_VARS = {
    "client_id": "SINALITE_CLIENT_ID_{suffix}",
    "client_secret": "SINALITE_CLIENT_SECRET_{suffix}",
    "auth_url": "SINALITE_AUTH_URL_{suffix}",
    "audience": "SINALITE_AUDIENCE_{suffix}",
}


def resolve_credentials(mode: str, env: Mapping[str, str] | None = None) -> Credentials:
    """指定モードの認証情報を解決する.

    Args:
        mode: "test" or "live"
        env: 参照する環境変数。省略時は os.environ。

    Raises:
        ConfigurationError: モードが不正、または必須値が欠けている場合
    """
    if mode not in MODES:
        raise ConfigurationError(f"Unknown credential mode: {mode!r}")
    if env is None:
        env = os.environ

    suffix = mode.upper()
    values: dict[str, str] = {}
    missing: list[str] = []
    for field_name, template in _REQUIRED_VARS.items():
        var = template.format(suffix=suffix)
        value = (env.get(var) or "").strip()
        if not value:
            missing.append(var)
        values[field_name] = value

    if missing:
        logger.error("認証情報が不足しています: mode=%s, missing=%s", mode, ", ".join(missing))
        raise ConfigurationError("Missing SinaLite credentials")

    api_base_url = (env.get(f"SINALITE_API_URL_{suffix}") or API_BASE_URLS[mode]).rstrip("/")

    return Credentials(mode=mode, api_base_url=api_base_url, **values)
