"""
Unit tests for the legislative API client
"""

import httpx
import pytest

from core.exceptions import (
    ApiError,
    BadRequestError,
    NotFoundError,
    OperationFailedError,
)
from etl.extractors.api_client import merge_params, replace_path
from etl.extractors.endpoints import (
    DEPUTADO_DISCURSOS,
    DEPUTADO_PERFIL,
    SENADORES_LEGISLATURA,
)


def test_replace_path_encodes_values():
    assert replace_path("/deputados/{codigo}/discursos", {"codigo": "a b/c"}) == "/deputados/a%20b%2Fc/discursos"


def test_merge_params_drops_empty_values():
    merged = merge_params({"ordem": "ASC", "itens": 100}, {"ordem": "DESC", "dataInicio": None, "uf": ""})

    assert merged == {"ordem": "DESC", "itens": 100}


class TestLegislativeApiClient:
    """Test request building and error mapping"""

    @pytest.mark.asyncio
    async def test_senado_paths_get_json_suffix(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"ok": True}), family="senado")

        async with client:
            data = await client.get(SENADORES_LEGISLATURA, {"legislatura": 57})

        assert data == {"ok": True}
        assert client.seen == [("/dadosabertos/senador/lista/legislatura/57.json", {})]

    @pytest.mark.asyncio
    async def test_endpoint_defaults_merged_with_params(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"dados": []}))

        async with client:
            await client.get(DEPUTADO_DISCURSOS, {"codigo": 204554}, {"idLegislatura": 57, "dataInicio": None})

        path, params = client.seen[0]
        assert path == "/api/v2/deputados/204554/discursos"
        assert params == {"ordenarPor": "dataHoraInicio", "ordem": "DESC", "idLegislatura": "57"}

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self, make_client):
        client = make_client(lambda request: httpx.Response(404, json={"detail": "not found"}))

        async with client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get(DEPUTADO_PERFIL, {"codigo": 1})

        assert exc_info.value.status_code == 404
        assert len(client.seen) == 1

    @pytest.mark.asyncio
    async def test_fetch_turns_not_found_into_outcome(self, make_client):
        client = make_client(lambda request: httpx.Response(404))

        async with client:
            outcome = await client.fetch(DEPUTADO_PERFIL, {"codigo": 1})

        assert outcome.found is False
        assert outcome.data is None
        assert outcome.endpoint == "/deputados/1"

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retried(self, make_client):
        client = make_client(lambda request: httpx.Response(400, text="bad date"))

        async with client:
            with pytest.raises(BadRequestError):
                await client.get(DEPUTADO_DISCURSOS, {"codigo": 1})

        assert len(client.seen) == 1

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_then_fail(self, make_client):
        client = make_client(lambda request: httpx.Response(503, text="unavailable"))

        async with client:
            with pytest.raises(OperationFailedError) as exc_info:
                await client.get(DEPUTADO_PERFIL, {"codigo": 1})

        assert len(client.seen) == 3
        assert isinstance(exc_info.value.last_error, ApiError)
        assert exc_info.value.last_error.status_code == 503

    @pytest.mark.asyncio
    async def test_recovers_after_transient_error(self, make_client):
        responses = iter([
            httpx.Response(500),
            httpx.Response(200, json={"dados": {"id": 1}}),
        ])
        client = make_client(lambda request: next(responses))

        async with client:
            data = await client.get(DEPUTADO_PERFIL, {"codigo": 1})

        assert data == {"dados": {"id": 1}}
        assert client.request_count == 2

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self, make_client):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("Connection refused", request=request)
            return httpx.Response(200, json=[])

        client = make_client(handler)

        async with client:
            assert await client.get(DEPUTADO_PERFIL, {"codigo": 1}) == []

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_invalid_json_raises_api_error(self, make_client):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        async with client:
            with pytest.raises(OperationFailedError) as exc_info:
                await client.get(DEPUTADO_PERFIL, {"codigo": 1})

        assert "parse JSON" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_get_all_pages(self, make_client):
        def handler(request):
            page = int(request.url.params["pagina"])
            size = 100 if page < 3 else 47
            return httpx.Response(200, json={"dados": [{"id": f"{page}-{i}"} for i in range(size)]})

        client = make_client(handler)

        async with client:
            items = await client.get_all_pages(DEPUTADO_DISCURSOS, {"codigo": 1}, page_size=100)

        assert len(items) == 247
        assert [p["pagina"] for _, p in client.seen] == ["1", "2", "3"]
        assert all(p["itens"] == "100" for _, p in client.seen)
