"""Tests for the explorer and CoinGecko HTTP clients."""

import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from lp_tracker.api import APIError, CoinGeckoClient, ExplorerClient, RateLimitError
from lp_tracker.chains import CHAINS

ADDRESS = "0x1111111111111111111111111111111111111111"


def _ok(result):
    return httpx.Response(200, json={"status": "1", "message": "OK", "result": result})


def _explorer(handler, api_key="", **kwargs):
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("min_interval", 0)
    chain = CHAINS["ethereum"].with_api_key(api_key)
    return ExplorerClient(chain, transport=httpx.MockTransport(handler), **kwargs)


def test_fetch_transactions_query():
    seen = []

    def handler(request):
        seen.append(request)
        return _ok([{"hash": "0x1"}])

    client = _explorer(handler)
    assert client.fetch_transactions(ADDRESS) == [{"hash": "0x1"}]

    params = seen[0].url.params
    assert seen[0].url.host == "api.etherscan.io"
    assert params["module"] == "account"
    assert params["action"] == "txlist"
    assert params["address"] == ADDRESS
    assert params["sort"] == "desc"
    assert "apikey" not in params
    assert seen[0].headers["User-Agent"].startswith("LPTracker/")


def test_api_key_is_sent_when_configured():
    seen = []

    def handler(request):
        seen.append(request)
        return _ok([])

    _explorer(handler, api_key="SECRET").fetch_token_transfers(ADDRESS)
    assert seen[0].url.params["apikey"] == "SECRET"


def test_results_are_memoized_until_cleared():
    calls = []

    def handler(request):
        calls.append(request)
        return _ok([{"hash": "0x1"}])

    client = _explorer(handler)
    client.fetch_transactions(ADDRESS)
    client.fetch_transactions(ADDRESS)
    assert len(calls) == 1

    client.clear_cache()
    client.fetch_transactions(ADDRESS)
    assert len(calls) == 2


def test_status_zero_means_empty():
    def handler(request):
        return httpx.Response(200, json={"status": "0", "message": "No transactions found", "result": []})

    assert _explorer(handler).fetch_transactions(ADDRESS) == []


@pytest.mark.parametrize("status,body", [
    (500, {"message": "server error"}),
    (200, [1, 2, 3]),
    (200, {"status": "1", "result": "Max rate limit reached"}),
])
def test_failures_look_like_no_activity(status, body):
    client = _explorer(lambda request: httpx.Response(status, json=body))
    assert client.fetch_transactions(ADDRESS) == []
    assert client.fetch_nft_transfers(ADDRESS) == []


def test_timeouts_are_retried_then_swallowed():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectTimeout("timed out", request=request)

    assert _explorer(handler).fetch_internal_transactions(ADDRESS) == []
    assert len(calls) == 3


def test_token_transfers_paging_and_contract_filter():
    seen = []

    def handler(request):
        seen.append(request)
        return _ok([])

    client = _explorer(handler, max_transactions=500)
    client.fetch_token_transfers(ADDRESS, contract_address="0xpool")

    params = seen[0].url.params
    assert params["action"] == "tokentx"
    assert params["offset"] == "500"
    assert params["contractaddress"] == "0xpool"


def test_native_balance():
    def handler(request):
        assert request.url.params["action"] == "balance"
        return _ok("2000000000000000000")

    assert _explorer(handler).fetch_native_balance(ADDRESS) == pytest.approx(2.0)


def test_native_balance_errors_give_zero():
    def handler(request):
        return httpx.Response(200, json={"status": "0", "message": "NOTOK", "result": "Invalid address"})

    assert _explorer(handler).fetch_native_balance(ADDRESS) == 0.0
    assert _explorer(lambda r: httpx.Response(502, text="bad gateway")).fetch_native_balance(ADDRESS) == 0.0


def test_fetch_chain_data():
    results = {
        "txlist": [{"hash": "0xtx"}],
        "tokentx": [{"hash": "0xtoken"}],
        "txlistinternal": [],
        "tokennfttx": [{"hash": "0xnft"}],
    }

    def handler(request):
        return _ok(results[request.url.params["action"]])

    data = _explorer(handler).fetch_chain_data(ADDRESS)
    assert data["transactions"] == [{"hash": "0xtx"}]
    assert data["tokenTransfers"] == [{"hash": "0xtoken"}]
    assert data["internalTransactions"] == []
    assert data["nftTransfers"] == [{"hash": "0xnft"}]


def test_coingecko_simple_price():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ethereum": {"usd": 3000}, "dai": {}})

    with CoinGeckoClient(transport=httpx.MockTransport(handler)) as client:
        prices = client.simple_price(["ethereum", "dai", "ethereum"])

    assert prices == {"ethereum": 3000.0}
    assert seen[0].url.params["ids"] == "dai,ethereum"
    assert seen[0].url.params["vs_currencies"] == "usd"


def test_coingecko_empty_request_skips_http():
    def handler(request):
        raise AssertionError("no request expected")

    assert CoinGeckoClient(transport=httpx.MockTransport(handler)).simple_price([]) == {}


def test_coingecko_http_error_raises():
    client = CoinGeckoClient(transport=httpx.MockTransport(lambda r: httpx.Response(404, json={"error": "not found"})))
    with pytest.raises(APIError) as exc_info:
        client.simple_price(["ethereum"])
    assert exc_info.value.status_code == 404
    assert "not found" in str(exc_info.value)


def test_gateway_errors_are_retried():
    responses = [
        httpx.Response(503, text="busy"),
        _ok([{"hash": "0x1"}]),
    ]

    def handler(request):
        return responses.pop(0)

    assert _explorer(handler).fetch_transactions(ADDRESS) == [{"hash": "0x1"}]
    assert responses == []


def test_client_errors_fail_fast():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"message": "bad request"})

    client = CoinGeckoClient(transport=httpx.MockTransport(handler), retry_delay=0)
    with pytest.raises(APIError):
        client.get("/ping")
    assert len(calls) == 1


def test_rate_limit_honours_retry_after(monkeypatch):
    sleeps = []
    monkeypatch.setattr("lp_tracker.api.base.time.sleep", sleeps.append)
    responses = [
        httpx.Response(429, headers={"Retry-After": "2"}),
        httpx.Response(200, json={"ethereum": {"usd": 3000}}),
    ]

    client = CoinGeckoClient(transport=httpx.MockTransport(lambda r: responses.pop(0)))
    assert client.simple_price(["ethereum"]) == {"ethereum": 3000.0}
    assert sleeps == [2.0]


def test_rate_limit_gives_up_after_retries():
    client = CoinGeckoClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(429)),
        retry_delay=0,
    )
    with pytest.raises(RateLimitError):
        client.simple_price(["ethereum"])


def test_requests_are_spaced(monkeypatch):
    sleeps = []
    monkeypatch.setattr("lp_tracker.api.base.time.sleep", sleeps.append)

    client = _explorer(lambda r: _ok([]), min_interval=60)
    client.fetch_transactions(ADDRESS)
    client.fetch_token_transfers(ADDRESS)

    assert len(sleeps) == 1
    assert 0 < sleeps[0] <= 60


def test_lazy_http_client_is_shared_across_threads():
    client = _explorer(lambda r: _ok([]))
    barrier = threading.Barrier(8)

    def grab(_):
        barrier.wait()
        return client.client

    with ThreadPoolExecutor(max_workers=8) as pool:
        clients = list(pool.map(grab, range(8)))

    assert all(c is clients[0] for c in clients)
    client.close()
