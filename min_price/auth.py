"""OAuth client-credentials によるアクセストークン取得."""

from __future__ import annotations

import logging

import requests

from min_price.config import REQUEST_TIMEOUT
from min_price.errors import AuthError
from min_price.models import Credentials

logger = logging.getLogger(__name__)


def fetch_access_token(credentials: Credentials, session: requests.Session) -> str:
    """認証情報を Bearer トークンに交換する.

    トークンは呼び出し1回分のみ使い、キャッシュしない。

    Raises:
        AuthError: HTTP エラー、通信失敗、または access_token が無い場合
    """
    payload = {
        "client_id": credentials.client_id,
        "client_secret": credentials.client_secret,
        "audience": credentials.audience,
        "grant_type": "client_credentials",
    }

    try:
        resp = session.post(credentials.auth_url, json=payload, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise AuthError(f"Auth request failed: {e}") from e

    if not resp.ok:
        raise AuthError(f"Auth failed: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise AuthError("Auth response is not JSON") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        raise AuthError("No access token received")

    logger.info("アクセストークン取得完了: mode=%s", credentials.mode)
    return token
