"""
FigmaAPIClient / DesignHost / 輸入載入測試
不需要真實 Figma Token，API 以 MagicMock 取代。
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from figma_codegen.figma_reader import (
    FigmaAPIClient,
    FigmaDesignHost,
    LocalDesignHost,
    VariableValue,
    load_design_file,
    roots_from_payload,
    select_pages,
)


def make_client(payload=None):
    client = FigmaAPIClient("figd_test")
    client.session = MagicMock()
    client.session.get.return_value.json.return_value = payload or {}
    return client


VARIABLES_PAYLOAD = {
    "meta": {
        "variableCollections": {"c1": {"defaultModeId": "m2"}},
        "variables": {
            "v1": {
                "id": "v1",
                "name": "Brand/Primary",
                "variableCollectionId": "c1",
                "valuesByMode": {
                    "m1": {"r": 0, "g": 0, "b": 0, "a": 1},
                    "m2": {"r": 1, "g": 0, "b": 0, "a": 1},
                },
            },
            "v2": {
                "id": "v2",
                "name": "Alias",
                "variableCollectionId": "c1",
                "valuesByMode": {"m2": {"type": "VARIABLE_ALIAS", "id": "v1"}},
            },
            "v3": {"id": "v3", "name": "Spacing/sm", "valuesByMode": {"m1": 8}},
            "loop": {
                "id": "loop",
                "name": "Loop",
                "valuesByMode": {"m1": {"type": "VARIABLE_ALIAS", "id": "loop"}},
            },
        },
    }
}


def make_host(payload=VARIABLES_PAYLOAD):
    client = MagicMock()
    client.get_local_variables.return_value = payload
    return FigmaDesignHost(client, "KEY"), client


# ─── FigmaAPIClient ──────────────────────────────────────────────────────────

class TestFigmaAPIClient:
    def test_token_header(self):
        client = FigmaAPIClient("figd_test")
        assert client.session.headers["X-Figma-Token"] == "figd_test"

    def test_get_file_with_ids(self):
        client = make_client({"document": {}})
        assert client.get_file("KEY", ["1:2", "3:4"]) == {"document": {}}
        client.session.get.assert_called_once_with(
            "https://api.figma.com/v1/files/KEY", params={"ids": "1:2,3:4"}, timeout=30.0
        )

    def test_get_images_svg_has_no_scale(self):
        client = make_client()
        client.get_images("KEY", ["1:2"], "svg")
        _, kwargs = client.session.get.call_args
        assert kwargs["params"] == {"ids": "1:2", "format": "svg"}

    def test_get_images_png_scale(self):
        client = make_client()
        client.get_images("KEY", ["1:2"])
        _, kwargs = client.session.get.call_args
        assert kwargs["params"]["scale"] == 2

    def test_http_error_propagates(self):
        client = make_client()
        client.session.get.return_value.raise_for_status.side_effect = RuntimeError("403")
        with pytest.raises(RuntimeError):
            client.get_local_variables("KEY")

    def test_download_text_skips_token(self, monkeypatch):
        calls = []

        def fake_get(url, timeout):
            calls.append(url)
            return SimpleNamespace(text="<svg/>", raise_for_status=lambda: None)

        monkeypatch.setattr("figma_codegen.figma_reader.requests.get", fake_get)
        client = make_client()
        assert client.download_text("https://s3/x.svg") == "<svg/>"
        assert calls == ["https://s3/x.svg"]
        client.session.get.assert_not_called()


# ─── FigmaDesignHost ─────────────────────────────────────────────────────────

class TestFigmaDesignHost:
    def test_resolve_default_mode(self):
        host, _ = make_host()
        value = asyncio.run(host.resolve_variable("v1"))
        assert value == VariableValue(name="Brand/Primary", literal_hex="#ff0000")

    def test_resolve_alias(self):
        host, _ = make_host()
        value = asyncio.run(host.resolve_variable("v2"))
        assert value.name == "Alias"
        assert value.literal_hex == "#ff0000"

    def test_non_color_variable_fails(self):
        host, _ = make_host()
        with pytest.raises(ValueError):
            asyncio.run(host.resolve_variable("v3"))

    def test_alias_cycle_fails(self):
        host, _ = make_host()
        with pytest.raises(ValueError, match="too deep"):
            asyncio.run(host.resolve_variable("loop"))

    def test_unknown_variable_fails(self):
        host, _ = make_host()
        with pytest.raises(KeyError):
            asyncio.run(host.resolve_variable("missing"))

    def test_variables_loaded_once(self):
        host, client = make_host()

        async def resolve_many():
            return await asyncio.gather(*(host.resolve_variable(v) for v in ("v1", "v2", "v1")))

        values = asyncio.run(resolve_many())
        assert [v.name for v in values] == ["Brand/Primary", "Alias", "Brand/Primary"]
        assert client.get_local_variables.call_count == 1

    def test_export_vector_markup(self):
        host, client = make_host()
        client.get_images.return_value = {"images": {"1:2": "https://s3/icon.svg"}}
        client.download_text.return_value = "<svg/>"
        markup = asyncio.run(host.export_vector_markup(SimpleNamespace(id="1:2")))
        assert markup == "<svg/>"
        client.get_images.assert_called_once_with("KEY", ["1:2"], "svg")

    def test_export_error_raises(self):
        host, client = make_host()
        client.get_images.return_value = {"err": "boom"}
        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(host.export_vector_markup(SimpleNamespace(id="1:2")))

    def test_export_without_url_raises(self):
        host, client = make_host()
        client.get_images.return_value = {"images": {"1:2": None}}
        with pytest.raises(RuntimeError):
            asyncio.run(host.export_vector_markup(SimpleNamespace(id="1:2")))


# ─── LocalDesignHost ─────────────────────────────────────────────────────────

class TestLocalDesignHost:
    def test_variable_hex_value(self):
        host = LocalDesignHost({"v1": {"name": "Brand", "value": "#123456"}})
        assert asyncio.run(host.resolve_variable("v1")) == VariableValue("Brand", "#123456")

    def test_variable_rgba_value(self):
        host = LocalDesignHost({"v1": {"name": "Overlay", "value": {"r": 0, "g": 0, "b": 0, "a": 0.5}}})
        assert asyncio.run(host.resolve_variable("v1")).literal_hex == "#00000080"

    def test_bad_variable_entries(self):
        host = LocalDesignHost({"named": "#fff", "empty": {"name": "X"}})
        with pytest.raises(ValueError):
            asyncio.run(host.resolve_variable("named"))
        with pytest.raises(ValueError):
            asyncio.run(host.resolve_variable("empty"))

    def test_vector_lookup(self):
        host = LocalDesignHost(vectors={"1": "<svg/>", "2": "  "})
        assert asyncio.run(host.export_vector_markup(SimpleNamespace(id="1"))) == "<svg/>"
        with pytest.raises(ValueError):
            asyncio.run(host.export_vector_markup(SimpleNamespace(id="2")))
        with pytest.raises(KeyError):
            asyncio.run(host.export_vector_markup(SimpleNamespace(id="3")))


# ─── Input loading ───────────────────────────────────────────────────────────

DOCUMENT = {
    "children": [
        {"name": "Home", "children": [{"id": "1", "type": "FRAME"}]},
        {"name": "Settings", "children": [{"id": "2", "type": "FRAME"}]},
    ]
}


class TestSelectPages:
    def test_first_page_by_default(self):
        assert [p["name"] for p in select_pages(DOCUMENT, None, None, False)] == ["Home"]

    def test_by_name_and_index(self):
        assert select_pages(DOCUMENT, "Settings", None, False)[0]["name"] == "Settings"
        assert select_pages(DOCUMENT, None, 1, False)[0]["name"] == "Settings"
        assert select_pages(DOCUMENT, "Nope", None, False) == []
        assert select_pages(DOCUMENT, None, 5, False) == []

    def test_all_pages(self):
        assert len(select_pages(DOCUMENT, None, None, True)) == 2

    def test_empty_document(self):
        assert select_pages({}, None, None, True) == []


class TestRootsFromPayload:
    def test_list(self):
        assert roots_from_payload([{"id": "1"}]) == [{"id": "1"}]

    def test_nodes_list(self):
        assert roots_from_payload({"nodes": [{"id": "1"}]}) == [{"id": "1"}]

    def test_nodes_response(self):
        data = {"nodes": {"1:2": {"document": {"id": "1:2"}}, "3:4": None}}
        assert roots_from_payload(data) == [{"id": "1:2"}]

    def test_file_response_page(self):
        assert roots_from_payload({"document": DOCUMENT}, "Settings") == [{"id": "2", "type": "FRAME"}]

    def test_file_response_missing_page(self):
        with pytest.raises(ValueError, match="page not found"):
            roots_from_payload({"document": DOCUMENT}, "Nope")

    def test_single_node(self):
        assert roots_from_payload({"id": "1", "type": "FRAME"}) == [{"id": "1", "type": "FRAME"}]

    def test_unrecognized(self):
        with pytest.raises(ValueError):
            roots_from_payload({"foo": 1})
        with pytest.raises(ValueError):
            roots_from_payload("text")


class TestLoadDesignFile:
    def test_loads_roots_and_host(self, tmp_path):
        path = tmp_path / "design.json"
        path.write_text(json.dumps({
            "nodes": [{"id": "1", "type": "FRAME"}],
            "variables": {"v1": {"name": "Brand", "value": "#ff0000"}},
            "vectors": {"2": "<svg/>"},
        }), encoding="utf-8")
        roots, host = load_design_file(str(path))
        assert roots == [{"id": "1", "type": "FRAME"}]
        assert isinstance(host, LocalDesignHost)
        assert host.vectors == {"2": "<svg/>"}
        assert asyncio.run(host.resolve_variable("v1")).name == "Brand"

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_design_file(str(tmp_path / "nope.json"))
