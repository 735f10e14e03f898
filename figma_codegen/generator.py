"""
Generator — sealed AltForest → code for one backend, plus page files.

``BACKENDS`` is the closed backend registry; ``wrap_page`` turns a rendered
tree into a standalone source file (HTML page, React component, Flutter
widget, SwiftUI view, Compose screen).
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from .compose_backend import ComposeBackend
from .emission import Backend, EmissionEngine, EmitContext, pad
from .flutter_backend import FlutterBackend
from .html_backend import HtmlBackend
from .swiftui_backend import SwiftUIBackend
from .tailwind_backend import TailwindBackend

BACKENDS: Dict[str, type] = {
    "html": HtmlBackend,
    "tailwind": TailwindBackend,
    "flutter": FlutterBackend,
    "swiftui": SwiftUIBackend,
    "compose": ComposeBackend,
}


def get_backend(name: str, ctx: EmitContext) -> Backend:
    backend_cls = BACKENDS.get(name)
    if backend_cls is None:
        raise ValueError(f"Unsupported backend: {name}")
    return backend_cls(ctx)


def generate_code(forest, config, diagnostics) -> str:
    """Emit every root of a sealed forest and render them in root order."""
    ctx = EmitContext(config=config, diagnostics=diagnostics)
    backend = get_backend(config.backend, ctx)
    fragments = EmissionEngine(backend).emit_forest(forest)
    return backend.render_document(fragments)


# ════════════════════════════════════════════════════════════
# Page files
# ════════════════════════════════════════════════════════════

def _sanitize_name(name: str) -> str:
    safe = "".join(ch if ch.isalnum() else " " for ch in name).strip()
    if not safe:
        return "Unnamed"
    parts = [p for p in safe.split() if p]
    name = "".join(p[:1].upper() + p[1:] for p in parts)
    return name if not name[0].isdigit() else f"Page{name}"


def _kebab(name: str) -> str:
    out = []
    for ch in name:
        if ch.isalnum():
            out.append(ch.lower())
        else:
            out.append("-")
    slug = "".join(out).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug or "unnamed"


def _indent(code: str, depth: int, width: int = 2) -> str:
    prefix = pad(depth, width)
    return "\n".join(prefix + line if line else line for line in code.splitlines())


def _build_html_page(title: str, body: str, tailwind: bool) -> str:
    script = '  <script src="https://cdn.tailwindcss.com"></script>\n' if tailwind else ""
    return (
        "<!doctype html>\n"
        "<html>\n<head>\n  <meta charset=\"utf-8\">\n  <title>" + title + "</title>\n"
        + script
        + "</head>\n<body>\n" + _indent(body, 1) + "\n</body>\n</html>\n"
    )


def page_filename(config, page_name: str) -> str:
    name = _sanitize_name(page_name)
    backend = config.backend
    if backend in ("html", "tailwind"):
        if config.html_mode == "jsx":
            return f"{name}.tsx"
        return f"{_kebab(page_name)}.html"
    if backend == "flutter":
        return str(Path("lib") / "pages" / f"{_kebab(page_name).replace('-', '_')}.dart")
    if backend == "swiftui":
        return f"{name}View.swift"
    if backend == "compose":
        return f"{name}Screen.kt"
    raise ValueError(f"Unsupported backend: {backend}")


def wrap_page(config, page_name: str, code: str) -> str:
    name = _sanitize_name(page_name)
    backend = config.backend
    body = code or ""

    if backend in ("html", "tailwind"):
        if config.html_mode == "jsx":
            return f"export const {name}Page = () => (\n{_indent(body, 1)}\n);\n"
        return _build_html_page(page_name, body, tailwind=backend == "tailwind")

    if backend == "flutter":
        imports = "import 'package:flutter/material.dart';\n"
        if "SvgPicture." in body:
            imports += "import 'package:flutter_svg/flutter_svg.dart';\n"
        widget = body if body.strip() else "const SizedBox.shrink()"
        return (
            imports + "\n"
            f"class {name}Page extends StatelessWidget {{\n"
            f"  const {name}Page({{super.key}});\n\n"
            "  @override\n  Widget build(BuildContext context) {\n"
            f"    return {_indent(widget, 2).lstrip()};\n"
            "  }\n}\n"
        )

    if backend == "swiftui":
        view = body if body.strip() else "EmptyView()"
        return (
            "import SwiftUI\n\n"
            f"struct {name}View: View {{\n"
            "    var body: some View {\n"
            f"{_indent(view, 2, 4)}\n"
            "    }\n}\n"
        )

    if backend == "compose":
        return (
            "import androidx.compose.foundation.*\n"
            "import androidx.compose.foundation.layout.*\n"
            "import androidx.compose.foundation.shape.*\n"
            "import androidx.compose.material3.Text\n"
            "import androidx.compose.runtime.Composable\n"
            "import androidx.compose.ui.*\n"
            "import androidx.compose.ui.draw.*\n"
            "import androidx.compose.ui.geometry.Offset\n"
            "import androidx.compose.ui.graphics.*\n"
            "import androidx.compose.ui.res.painterResource\n"
            "import androidx.compose.ui.text.*\n"
            "import androidx.compose.ui.text.font.*\n"
            "import androidx.compose.ui.text.style.*\n"
            "import androidx.compose.ui.unit.*\n\n"
            "@Composable\n"
            f"fun {name}Screen() {{\n"
            f"{_indent(body, 1, 4)}\n"
            "}\n"
        )

    raise ValueError(f"Unsupported backend: {backend}")


def write_page(output_dir: str, config, page_name: str, code: str) -> Path:
    path = Path(output_dir) / page_filename(config, page_name)
    _write(path, wrap_page(config, page_name, code))
    return path


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
