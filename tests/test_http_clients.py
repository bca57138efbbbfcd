"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx

from meal_planner.adapters.fdc_client import HttpxFdcClient


def test_fdc_client_search_and_get() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/foods/search"):
            return httpx.Response(200, json={"foods": []})
        return httpx.Response(200, json={"fdcId": 1, "foodNutrients": []})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=async_client,
    )

    search = asyncio.run(client.search_foods("rice"))
    food = asyncio.run(client.get_food(1))

    assert search == {"foods": []}
    assert food["fdcId"] == 1


def test_fdc_client_search_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"foods": []})

    transport = httpx.MockTransport(handler)
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test/fdc/v1",
        http_client=httpx.AsyncClient(transport=transport),
    )

    asyncio.run(
        client.search_foods(
            "egg whole raw", page_size=3, data_types=["SR Legacy", "Foundation"]
        )
    )
    asyncio.run(client.search_foods("oats"))

    first, second = seen
    assert first.method == "POST"
    assert first.url.path == "/fdc/v1/foods/search"
    assert first.url.params["api_key"] == "key"
    assert json.loads(first.content.decode()) == {
        "query": "egg whole raw",
        "pageSize": 3,
        "dataType": ["SR Legacy", "Foundation"],
    }
    assert "dataType" not in json.loads(second.content.decode())


def test_fdc_client_close() -> None:
    client = HttpxFdcClient.create(api_key="key", base_url="https://api.test")

    asyncio.run(client.close())

    assert client.http_client.is_closed
