"""
CLI convert / preview / generate 測試（以 sys.argv 驅動 main）
"""
import json
import sys

import pytest

from figma_codegen import cli

DESIGN = {
    "nodes": [{
        "id": "1:1",
        "type": "FRAME",
        "name": "Hero",
        "absoluteBoundingBox": {"x": 0, "y": 0, "width": 100, "height": 50},
        "fills": [{"type": "SOLID", "color": {"r": 1, "g": 0, "b": 0, "a": 1}}],
        "children": [{
            "id": "1:2",
            "type": "TEXT",
            "name": "Title",
            "characters": "Hi",
            "absoluteBoundingBox": {"x": 10, "y": 10, "width": 40, "height": 20},
        }],
    }]
}


def run_cli(monkeypatch, tmp_path, *argv):
    monkeypatch.setattr(sys, "argv", ["figma-codegen", "--config", str(tmp_path / "none.json"), *argv])
    cli.main()


@pytest.fixture
def design_file(tmp_path):
    path = tmp_path / "design.json"
    path.write_text(json.dumps(DESIGN), encoding="utf-8")
    return path


class TestConvertCommand:
    def test_prints_code(self, monkeypatch, tmp_path, design_file, capsys):
        run_cli(monkeypatch, tmp_path, "convert", str(design_file))
        out = capsys.readouterr().out
        assert "Converting" in out
        assert "background-color: #ff0000" in out

    def test_writes_output_and_tokens(self, monkeypatch, tmp_path, design_file):
        output = tmp_path / "out" / "App.tsx"
        tokens = tmp_path / "tokens.json"
        run_cli(monkeypatch, tmp_path, "convert", str(design_file),
                "--backend", "tailwind", "--mode", "jsx", "-o", str(output), "--tokens", str(tokens))
        assert 'className="' in output.read_text(encoding="utf-8")
        assert json.loads(tokens.read_text(encoding="utf-8"))["colors"] == ["#ff0000"]

    def test_json_output(self, monkeypatch, tmp_path, design_file, capsys):
        run_cli(monkeypatch, tmp_path, "convert", str(design_file), "--backend", "flutter", "--json")
        out = capsys.readouterr().out
        payload = json.loads(out[out.index("{"):])
        assert payload["code"].startswith("Container(")
        assert payload["paletteSummary"] == [{"hex": "#ff0000"}]

    def test_missing_file(self, monkeypatch, tmp_path, capsys):
        run_cli(monkeypatch, tmp_path, "convert", str(tmp_path / "nope.json"))
        assert "無法讀取設計檔" in capsys.readouterr().out


class TestPreviewCommand:
    def test_naming_tree(self, monkeypatch, tmp_path, design_file, capsys):
        run_cli(monkeypatch, tmp_path, "preview", str(design_file))
        out = capsys.readouterr().out
        assert "├─ Hero  [Container]" in out
        assert "  ├─ Title  [Text]" in out
        assert "Total nodes: 2" in out

    def test_save_ir(self, monkeypatch, tmp_path, design_file):
        ir_dir = tmp_path / "ir"
        run_cli(monkeypatch, tmp_path, "preview", str(design_file), "--save-ir", str(ir_dir))
        data = json.loads((ir_dir / "ir.json").read_text(encoding="utf-8"))
        assert data[0]["unique_name"] == "Hero"


class TestGenerateCommand:
    def test_requires_token(self, monkeypatch, tmp_path, capsys):
        monkeypatch.delenv("FIGMA_TOKEN", raising=False)
        run_cli(monkeypatch, tmp_path, "generate", "--file-key", "KEY")
        assert "FIGMA_TOKEN" in capsys.readouterr().out

    def test_requires_file_key(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("FIGMA_TOKEN", "figd_test")
        run_cli(monkeypatch, tmp_path, "generate")
        assert "--file-key" in capsys.readouterr().out

    def test_friendly_404(self, monkeypatch, tmp_path, capsys):
        class NotFound(Exception):
            response = type("Response", (), {"status_code": 404})()

        def fail(**kwargs):
            raise NotFound("404")

        monkeypatch.setenv("FIGMA_TOKEN", "figd_test")
        monkeypatch.setattr(cli, "generate_project", fail)
        run_cli(monkeypatch, tmp_path, "generate", "--file-key", "KEY")
        assert "找不到檔案 'KEY'" in capsys.readouterr().out

    def test_passes_options(self, monkeypatch, tmp_path, capsys):
        seen = {}

        def fake_generate(**kwargs):
            seen.update(kwargs)
            return {}

        monkeypatch.setenv("FIGMA_TOKEN", "figd_test")
        monkeypatch.setattr(cli, "generate_project", fake_generate)
        run_cli(monkeypatch, tmp_path, "generate", "--file-key", "KEY", "--backend", "compose",
                "--node-ids", "1:2, 3:4", "--output", str(tmp_path / "gen"))
        assert seen["config"].backend == "compose"
        assert seen["node_ids"] == ["1:2", "3:4"]
        assert seen["output_dir"] == str(tmp_path / "gen")
        assert "Generated compose code" in capsys.readouterr().out
