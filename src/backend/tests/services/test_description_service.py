"""
Tests for festive description suggestions.
"""

import json

import httpx
import pytest

from core.exceptions import InvalidArgumentError
from services.description_service import (
    DEFAULT_DESCRIPTION,
    FALLBACK_DESCRIPTION,
    DescriptionService,
)

ENDPOINT = "https://lights.openai.azure.com/"


def _completion(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _service(handler, **kwargs) -> DescriptionService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DescriptionService(
        http_client=client,
        endpoint=kwargs.pop("endpoint", ENDPOINT),
        api_key=kwargs.pop("api_key", "secret"),
        deployment="gpt-4o-mini",
        api_version="2024-06-01",
        **kwargs,
    )


@pytest.mark.unit
class TestGenerateFestiveDescription:
    """Tests for DescriptionService.generate_festive_description."""

    async def test_returns_model_text(self) -> None:
        """Test the request shape and that the reply text is returned."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion("  Twinkling reindeer prance. Come say hello!  "))

        service = _service(handler)
        description = await service.generate_festive_description(" 1 Holly Way ")

        assert description == "Twinkling reindeer prance. Come say hello!"
        request = seen[0]
        assert request.url.path == "/openai/deployments/gpt-4o-mini/chat/completions"
        assert request.url.params["api-version"] == "2024-06-01"
        assert request.headers["api-key"] == "secret"
        body = json.loads(request.content)
        assert body["temperature"] == 0.8
        assert body["top_p"] == 0.9
        assert "1 Holly Way" in body["messages"][0]["content"]

    async def test_server_error_falls_back(self) -> None:
        """Test an upstream 500 returns the fallback text."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "down"})

        service = _service(handler)

        assert await service.generate_festive_description("1 Holly Way") == FALLBACK_DESCRIPTION

    async def test_transport_error_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        service = _service(handler)

        assert await service.generate_festive_description("1 Holly Way") == FALLBACK_DESCRIPTION

    async def test_malformed_reply_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        service = _service(handler)

        assert await service.generate_festive_description("1 Holly Way") == FALLBACK_DESCRIPTION

    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_reply_uses_default(self, content) -> None:
        """Test a blank answer becomes the default description."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_completion(content))

        service = _service(handler)

        assert await service.generate_festive_description("1 Holly Way") == DEFAULT_DESCRIPTION

    @pytest.mark.parametrize("missing", ["endpoint", "api_key"])
    async def test_unconfigured_falls_back_without_calling(self, missing) -> None:
        """Test no request is made when the client is not configured."""
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_completion("unused"))

        service = _service(handler, **{missing: ""})

        assert service.configured is False
        assert await service.generate_festive_description("1 Holly Way") == FALLBACK_DESCRIPTION
        assert calls == []

    @pytest.mark.parametrize("address", ["", "   "])
    async def test_blank_address_rejected(self, address) -> None:
        service = _service(lambda request: httpx.Response(200, json=_completion("x")))

        with pytest.raises(InvalidArgumentError):
            await service.generate_festive_description(address)
