"""テスト共通のフィクスチャ."""

import json
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_ENV = {
    "SINALITE_CLIENT_ID_TEST": "test-id",
    "SINALITE_CLIENT_SECRET_TEST": "test-secret",
    "SINALITE_AUTH_URL_TEST": "https://auth.example.com/oauth/token",
    "SINALITE_AUDIENCE_TEST": "https://apiconnect.sinalite.com",
    "SINALITE_API_URL_TEST": "https://vendor.example.com",
    "SINALITE_CLIENT_ID_LIVE": "live-id",
    "SINALITE_CLIENT_SECRET_LIVE": "live-secret",
    "SINALITE_AUTH_URL_LIVE": "https://auth.example.com/live/token",
    "SINALITE_AUDIENCE_LIVE": "https://live.sinalite.com",
}


def load_json_fixture(name: str):
    return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))


def make_response(status: int = 200, payload=None) -> MagicMock:
    """requests.Response 相当のモックを作る."""
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return resp


class FakeSession:
    """URL ごとに応答を返す requests.Session の代用.

    price_for は productOptions を受け取り、レスポンスの dict
    （または requests.RequestException）を返す関数。
    """

    def __init__(self, options_by_product=None, price_for=None, token="token-123"):
        self.headers = {}
        self.options_by_product = options_by_product or {}
        self.price_for = price_for or (lambda options: {})
        self.token = token
        self.price_requests = []
        self.auth_requests = []
        self._lock = threading.Lock()

    def get(self, url, timeout=None):
        product_id = url.rstrip("/").split("/")[-2]
        payload = self.options_by_product.get(product_id)
        if payload is None:
            return make_response(404, {"error": "not found"})
        return make_response(200, payload)

    def post(self, url, json=None, timeout=None):
        if "/price/" not in url:
            self.auth_requests.append((url, json))
            return make_response(200, {"access_token": self.token})

        options = tuple(json["productOptions"])
        with self._lock:
            self.price_requests.append(options)
        result = self.price_for(options)
        if isinstance(result, Exception):
            raise result
        return make_response(200, result)


@pytest.fixture
def test_env():
    return dict(TEST_ENV)
