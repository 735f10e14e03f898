"""
後端註冊表 / 頁面檔案 / generate_project 測試
generate_project 以 mock FigmaAPIClient 執行，不打真實 API。
"""
import json
from unittest.mock import MagicMock

import pytest

from figma_codegen.config import RunConfig
from figma_codegen.diagnostics import ConversionError, Diagnostics
from figma_codegen.emission import EmitContext
from figma_codegen.generator import (
    BACKENDS,
    generate_code,
    get_backend,
    page_filename,
    wrap_page,
    write_page,
)
from figma_codegen.ir_builder import build_forest
from figma_codegen.pipeline import generate_project

FRAME = {
    "id": "1:1",
    "type": "FRAME",
    "name": "Hero",
    "absoluteBoundingBox": {"x": 0, "y": 0, "width": 100, "height": 50},
    "fills": [{"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0, "a": 1}}],
}


# ─── Registry ────────────────────────────────────────────────────────────────

class TestBackendRegistry:
    def test_every_backend_registered(self):
        ctx = EmitContext(config=RunConfig(), diagnostics=Diagnostics())
        for name in ("html", "tailwind", "flutter", "swiftui", "compose"):
            assert get_backend(name, ctx).name == name

    def test_unknown_backend(self):
        ctx = EmitContext(config=RunConfig(), diagnostics=Diagnostics())
        with pytest.raises(ValueError, match="Unsupported backend: qt"):
            get_backend("qt", ctx)

    def test_registry_is_closed(self):
        assert set(BACKENDS) == {"html", "tailwind", "flutter", "swiftui", "compose"}

    def test_unsealed_forest_is_rejected(self):
        diagnostics = Diagnostics()
        forest = build_forest([FRAME], RunConfig(), diagnostics)
        with pytest.raises(ConversionError):
            generate_code(forest, RunConfig(), diagnostics)


# ─── Page files ──────────────────────────────────────────────────────────────

class TestPageFiles:
    @pytest.mark.parametrize("backend, mode, expected", [
        ("html", "html", "landing-page.html"),
        ("tailwind", "html", "landing-page.html"),
        ("html", "jsx", "LandingPage.tsx"),
        ("flutter", "html", "lib/pages/landing_page.dart"),
        ("swiftui", "html", "LandingPageView.swift"),
        ("compose", "html", "LandingPageScreen.kt"),
    ])
    def test_filenames(self, backend, mode, expected):
        config = RunConfig(backend=backend, html_mode=mode)
        assert page_filename(config, "Landing Page").replace("\\", "/") == expected

    def test_digit_page_name(self):
        assert page_filename(RunConfig(backend="swiftui"), "404") == "Page404View.swift"

    def test_html_page(self):
        page = wrap_page(RunConfig(backend="tailwind"), "Home", "<div></div>")
        assert page.startswith("<!doctype html>")
        assert "<title>Home</title>" in page
        assert "cdn.tailwindcss.com" in page
        assert "  <div></div>" in page

    def test_plain_html_has_no_tailwind(self):
        assert "tailwindcss" not in wrap_page(RunConfig(), "Home", "<div></div>")

    def test_jsx_component(self):
        page = wrap_page(RunConfig(html_mode="jsx"), "Home", "<div />")
        assert page == "export const HomePage = () => (\n  <div />\n);\n"

    def test_flutter_widget(self):
        page = wrap_page(RunConfig(backend="flutter"), "Home", "SvgPicture.string(r'''<svg/>''')")
        assert "class HomePage extends StatelessWidget {" in page
        assert "import 'package:flutter_svg/flutter_svg.dart';" in page
        assert "return SvgPicture.string(r'''<svg/>''');" in page

    def test_flutter_empty_body(self):
        page = wrap_page(RunConfig(backend="flutter"), "Home", "")
        assert "return const SizedBox.shrink();" in page
        assert "flutter_svg" not in page

    def test_swiftui_view(self):
        page = wrap_page(RunConfig(backend="swiftui"), "Home", "Color.clear")
        assert "struct HomeView: View {" in page
        assert "        Color.clear\n" in page

    def test_compose_screen(self):
        page = wrap_page(RunConfig(backend="compose"), "Home", "Box()")
        assert "@Composable\nfun HomeScreen() {\n    Box()\n}\n" in page

    def test_write_page(self, tmp_path):
        path = write_page(str(tmp_path), RunConfig(backend="flutter"), "Home", "Text('Hi')")
        assert path == tmp_path / "lib" / "pages" / "home.dart"
        assert "return Text('Hi');" in path.read_text(encoding="utf-8")


# ─── generate_project ────────────────────────────────────────────────────────

def mock_client(monkeypatch, file_payload=None, nodes_payload=None):
    client = MagicMock()
    client.get_file.return_value = file_payload or {}
    client.get_file_nodes.return_value = nodes_payload or {}
    monkeypatch.setattr("figma_codegen.pipeline.FigmaAPIClient", lambda token: client)
    return client


class TestGenerateProject:
    def test_writes_pages_and_tokens(self, tmp_path, monkeypatch):
        document = {"children": [
            {"name": "Home", "children": [FRAME]},
            {"name": "About Us", "children": [dict(FRAME, id="2:1")]},
        ]}
        mock_client(monkeypatch, file_payload={"document": document})
        results = generate_project("token", "KEY", RunConfig(), str(tmp_path), all_pages=True)

        assert list(results) == ["Home", "About Us"]
        assert (tmp_path / "home.html").exists()
        assert (tmp_path / "about-us.html").exists()
        tokens = json.loads((tmp_path / "tokens.json").read_text(encoding="utf-8"))
        assert tokens["colors"] == ["#ff0000"]

    def test_node_ids_use_nodes_endpoint(self, tmp_path, monkeypatch):
        client = mock_client(monkeypatch, nodes_payload={"nodes": {"1:1": {"document": FRAME}}})
        results = generate_project("token", "KEY", RunConfig(backend="swiftui"), str(tmp_path), node_ids=["1:1"])

        client.get_file_nodes.assert_called_once_with("KEY", ["1:1"])
        assert list(results) == ["Selection"]
        assert (tmp_path / "SelectionView.swift").exists()

    def test_no_matching_page(self, tmp_path, monkeypatch):
        mock_client(monkeypatch, file_payload={"document": {"children": [{"name": "Home"}]}})
        with pytest.raises(ValueError, match="No matching Figma pages"):
            generate_project("token", "KEY", RunConfig(), str(tmp_path), page_name="Missing")
