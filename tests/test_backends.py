"""
各後端輸出測試：HTML / JSX / Tailwind / Flutter / SwiftUI / Compose
以完整管線（正規化 → annotate → 產生）驅動，只檢查關鍵片段。
"""
import pytest

from figma_codegen.config import RunConfig
from figma_codegen.diagnostics import Severity
from figma_codegen.figma_reader import LocalDesignHost
from figma_codegen.generator import wrap_page
from figma_codegen.pipeline import convert

SVG = '<svg width="16" height="16"><path d="M0 0h16v16z" fill-rule="evenodd"/></svg>'


def rgb(r, g, b, a=1):
    return {"r": r / 255, "g": g / 255, "b": b / 255, "a": a}


RED = rgb(255, 0, 0)


def raw(node_id, node_type="FRAME", box=(0, 0, 100, 50), children=None, **extra):
    x, y, w, h = box
    data = {
        "id": node_id,
        "type": node_type,
        "name": extra.pop("name", node_id),
        "absoluteBoundingBox": {"x": x, "y": y, "width": w, "height": h},
    }
    if children is not None:
        data["children"] = children
    data.update(extra)
    return data


def solid(color=RED, variable_id=None):
    paint = {"type": "SOLID", "color": color}
    if variable_id:
        paint["boundVariables"] = {"color": {"type": "VARIABLE_ALIAS", "id": variable_id}}
    return paint


def text(node_id="t", characters="Hi", box=(0, 0, 40, 20), **extra):
    return raw(node_id, "TEXT", box=box, characters=characters, **extra)


def two_run_text():
    return text(
        characters="Hello World",
        characterStyleOverrides=[0] * 6 + [1] * 5,
        styleOverrideTable={"1": {"fontWeight": 700}},
    )


def row(children, **extra):
    layout = {
        "layoutMode": "HORIZONTAL",
        "itemSpacing": 8,
        "paddingTop": 4, "paddingBottom": 4, "paddingLeft": 8, "paddingRight": 8,
        "counterAxisAlignItems": "CENTER",
    }
    layout.update(extra)
    return raw("row", box=(0, 0, 200, 40), name="Row", children=children, **layout)


def bar(node_id="bar", box=(0, 0, 100, 20), **extra):
    # 100px 寬，不會被判定為 icon
    return raw(node_id, "RECTANGLE", box=box, **extra)


def icon_frame():
    return raw("root", box=(0, 0, 200, 200), children=[
        raw("v", "VECTOR", box=(0, 0, 16, 16), name="Icon"),
        text(),
    ])


def run(roots, backend="html", host=None, **config):
    return convert(roots, RunConfig(backend=backend, **config), host)


# ════════════════════════════════════════════════════════════
# HTML
# ════════════════════════════════════════════════════════════

class TestHtmlBackend:

    def test_simple_frame(self):
        result = run([raw("1", fills=[solid()])])
        assert result.code == '<div style="width: 100px; height: 50px; background-color: #ff0000"></div>'

    def test_auto_layout_row(self):
        result = run([row([text(), bar()])])
        first_line = result.code.splitlines()[0]
        assert first_line == (
            '<div style="width: 200px; height: 40px; display: flex; flex-direction: row; '
            'align-items: center; gap: 8px; padding: 4px 8px">'
        )
        assert result.diagnostics == []

    def test_negative_gap_warns(self):
        result = run([row([text(), bar()], itemSpacing=-4)])
        assert "gap:" not in result.code
        assert result.warnings == ["negative spacing -4 on 'Row' is not supported in CSS gap"]

    def test_absolute_child_in_manual_frame(self):
        result = run([raw("1", box=(100, 100, 200, 200), children=[bar(box=(110, 120, 100, 20))])])
        assert "position: relative" in result.code
        assert "position: absolute; left: 10px; top: 20px" in result.code

    def test_rotation_is_clockwise_css(self):
        result = run([raw("1", box=(0, 0, 200, 200), children=[bar(box=(0, 0, 20, 100), rotation=90)])])
        assert "transform: rotate(-90deg)" in result.code
        assert "width: 100px; height: 20px" in result.code

    def test_ellipse_and_shadow(self):
        shadow = {
            "type": "DROP_SHADOW", "visible": True, "radius": 4,
            "offset": {"x": 0, "y": 2}, "color": {"r": 0, "g": 0, "b": 0, "a": 0.25},
        }
        result = run([raw("e", "ELLIPSE", box=(0, 0, 100, 100), effects=[shadow])])
        assert "border-radius: 50%" in result.code
        assert "box-shadow: 0px 2px 4px 0px rgba(0, 0, 0, 0.25)" in result.code

    def test_text_is_escaped(self):
        result = run([text(characters="a < b & c")])
        assert ">a &lt; b &amp; c</p>" in result.code
        assert "font-family: 'Inter'" in result.code

    def test_styled_runs_become_inline_spans(self):
        result = run([two_run_text()])
        assert result.code.count("<span") == 2
        assert "font-weight: 700\">World</span></p>" in result.code

    def test_multiple_fills_stack_as_layers(self):
        fills = [solid(), solid(rgb(0, 0, 255, 0.5))]
        result = run([raw("1", fills=fills)])
        assert (
            "background: linear-gradient(rgba(0, 0, 255, 0.5), rgba(0, 0, 255, 0.5)), "
            "linear-gradient(#ff0000, #ff0000)"
        ) in result.code

    def test_image_fill_warns(self):
        result = run([raw("1", name="Photo", fills=[{"type": "IMAGE", "imageRef": "x"}])])
        assert result.warnings == ["image fill on 'Photo' is not exported"]

    def test_layer_names(self):
        result = run([raw("1", name="Hero Card")], show_layer_names=True)
        assert 'data-layer="HeroCard"' in result.code

    def test_config_scale_rounds_spacing(self):
        scales = {"html": {"spacing": [0, 4, 10, 16]}}
        result = run([row([text(), bar()])], scales=scales, scale_threshold=30)
        assert "gap: 10px" in result.code


class TestJsxMode:

    def test_style_object_and_self_closing(self):
        result = run([raw("1", fills=[solid()])], html_mode="jsx")
        assert result.code == '<div style={{width: "100px", height: "50px", backgroundColor: "#ff0000"}} />'

    def test_svg_attributes_camel_cased(self):
        host = LocalDesignHost(vectors={"v": SVG})
        result = run([icon_frame()], host=host, html_mode="jsx")
        assert 'fillRule="evenodd"' in result.code
        assert "fill-rule" not in result.code

    def test_multiple_roots_wrapped_in_fragment(self):
        result = run([raw("a"), raw("b")], html_mode="jsx")
        lines = result.code.splitlines()
        assert lines[0] == "<>"
        assert lines[-1] == "</>"

    def test_text_with_braces_is_expression(self):
        result = run([text(characters="{x}")], html_mode="jsx")
        assert '>{"{x}"}</p>' in result.code


# ════════════════════════════════════════════════════════════
# Tailwind
# ════════════════════════════════════════════════════════════

class TestTailwindBackend:

    def test_simple_frame_snaps_to_scale(self):
        result = run([raw("1", fills=[solid()])], "tailwind")
        assert result.code == '<div class="w-24 h-12 bg-[#ff0000]"></div>'

    def test_rounding_off_uses_arbitrary_values(self):
        result = run([raw("1")], "tailwind", round_to_scale=False)
        assert 'class="w-[100px] h-[50px]"' in result.code

    def test_palette_color(self):
        result = run([raw("1", fills=[solid(rgb(59, 130, 246))])], "tailwind")
        assert "bg-blue-500" in result.code

    def test_palette_color_with_alpha(self):
        result = run([raw("1", fills=[solid(rgb(59, 130, 246, 0.5))])], "tailwind")
        assert "bg-blue-500/50" in result.code

    def test_round_colors_off(self):
        result = run([raw("1", fills=[solid(rgb(59, 130, 246))])], "tailwind", round_colors=False)
        assert "bg-[#3b82f6]" in result.code

    def test_auto_layout_classes(self):
        result = run([row([text(), bar()])], "tailwind")
        assert result.code.splitlines()[0] == (
            '<div class="w-48 h-10 flex flex-row items-center gap-2 px-2 py-1">'
        )

    def test_variable_color(self):
        host = LocalDesignHost({"v1": {"name": "Brand", "value": "#ff0000"}})
        result = run([raw("1", fills=[solid(variable_id="v1")])], "tailwind", host=host)
        assert "bg-[var(--brand)]" in result.code

    def test_text_classes(self):
        result = run([text(style={"fontSize": 16, "fontWeight": 700, "fontFamily": "Inter"})], "tailwind")
        assert "text-base font-bold font-['Inter']" in result.code

    def test_negative_gap_warns(self):
        result = run([row([text(), bar()], itemSpacing=-4)], "tailwind")
        assert result.warnings == ["negative spacing -4 on 'Row' is not supported in Tailwind gap"]

    def test_config_scale_labels(self):
        scales = {"tailwind": {"spacing": {"sm": 8, "md": 16}}}
        result = run([row([text(), bar()], paddingTop=0, paddingBottom=0, paddingLeft=0, paddingRight=0)],
                     "tailwind", scales=scales)
        assert "gap-sm" in result.code

    def test_jsx_class_name(self):
        result = run([raw("1")], "tailwind", html_mode="jsx")
        assert result.code == '<div className="w-24 h-12" />'


# ════════════════════════════════════════════════════════════
# Flutter
# ════════════════════════════════════════════════════════════

class TestFlutterBackend:

    def test_container_with_color(self):
        result = run([raw("1", fills=[solid()])], "flutter")
        assert result.code.startswith("Container(")
        assert "width: 100.0" in result.code
        assert "decoration: BoxDecoration(color: Color(0xFFFF0000))" in result.code

    def test_row_with_gap_spacers(self):
        result = run([row([bar("a"), bar("b")])], "flutter")
        assert "Row(" in result.code
        assert "crossAxisAlignment: CrossAxisAlignment.center" in result.code
        assert result.code.count("SizedBox(width: 8.0)") == 1
        assert "padding: EdgeInsets.symmetric(horizontal: 8.0, vertical: 4.0)" in result.code

    def test_fill_child_is_expanded(self):
        result = run([row([bar("a", layoutGrow=1), bar("b")])], "flutter")
        assert "Expanded(" in result.code

    def test_absolute_children_use_stack(self):
        result = run([raw("1", box=(100, 100, 200, 200), children=[bar(box=(110, 120, 100, 20))])], "flutter")
        assert "Stack(" in result.code
        assert "Positioned(" in result.code
        assert "left: 10.0" in result.code

    def test_inner_shadow_warns(self):
        effect = {"type": "INNER_SHADOW", "visible": True, "radius": 2}
        result = run([bar(effects=[effect])], "flutter")
        assert result.warnings == ["inner shadow on 'Bar' is not supported in Flutter"]

    def test_text_escapes_dollar(self):
        result = run([text(characters="Cost $5")], "flutter")
        assert "'Cost \\$5'" in result.code

    def test_rich_text(self):
        result = run([two_run_text()], "flutter")
        assert "Text.rich(" in result.code
        assert "fontWeight: FontWeight.w700" in result.code

    def test_multiple_roots_in_column(self):
        result = run([bar("a"), bar("b")], "flutter")
        assert result.code == (
            "Column(\n"
            "  children: [\n"
            "    SizedBox(width: 100.0, height: 20.0),\n"
            "    SizedBox(width: 100.0, height: 20.0),\n"
            "  ],\n"
            ")"
        )
        page = wrap_page(RunConfig(backend="flutter"), "Home", result.code)
        assert "    return Column(\n" in page
        assert "    );\n" in page

    def test_wrap(self):
        result = run([row([bar("a"), bar("b")], layoutWrap="WRAP", counterAxisSpacing=12)], "flutter")
        assert "Wrap(" in result.code
        assert "spacing: 8.0" in result.code
        assert "runSpacing: 12.0" in result.code

    def test_embedded_svg(self):
        result = run([icon_frame()], "flutter", host=LocalDesignHost(vectors={"v": SVG}))
        assert "SvgPicture.string(" in result.code
        assert "r'''<svg" in result.code

    def test_variable_comment(self):
        host = LocalDesignHost({"v1": {"name": "Brand", "value": "#ff0000"}})
        result = run([raw("1", fills=[solid(variable_id="v1")])], "flutter", host=host)
        assert "Color(0xFFFF0000) /* Brand */" in result.code

    def test_multiple_fills_keep_top(self):
        result = run([raw("1", name="Card", fills=[solid(), solid(rgb(0, 0, 255))])], "flutter")
        assert "Color(0xFF0000FF)" in result.code
        assert "Color(0xFFFF0000)" not in result.code
        assert result.warnings == ["only the top fill of 'Card' is kept"]


# ════════════════════════════════════════════════════════════
# SwiftUI
# ════════════════════════════════════════════════════════════

class TestSwiftUIBackend:

    def test_leaf_frame(self):
        result = run([raw("1", fills=[solid()])], "swiftui")
        assert result.code == (
            "Color.clear\n"
            ".frame(width: 100, height: 50)\n"
            ".background(Color(red: 1, green: 0, blue: 0))"
        )

    def test_hstack(self):
        result = run([row([bar("a"), bar("b")], counterAxisAlignItems="MIN")], "swiftui")
        assert result.code.startswith("HStack(alignment: .top, spacing: 8) {")
        assert ".padding(.horizontal, 8)" in result.code

    def test_wrap_warns(self):
        result = run([row([bar("a"), bar("b")], layoutWrap="WRAP")], "swiftui")
        assert result.warnings == ["wrap on 'Row' is not supported in SwiftUI, laid out as a single line"]

    def test_space_between_uses_spacers(self):
        result = run([row([bar("a"), bar("b")], primaryAxisAlignItems="SPACE_BETWEEN")], "swiftui")
        assert "spacing: 0" in result.code
        assert result.code.count("Spacer()") == 1

    def test_vector_references_asset(self):
        result = run([icon_frame()], "swiftui", host=LocalDesignHost(vectors={"v": SVG}))
        assert 'Image("Icon")' in result.code
        assert any("inline vector markup is not supported in SwiftUI" in w for w in result.warnings)

    def test_text_runs_concatenate(self):
        result = run([two_run_text()], "swiftui")
        assert 'Text("Hello ").font(.custom("Inter", size: 14))' in result.code
        assert '+ Text("World").font(.custom("Inter", size: 14)).fontWeight(.bold)' in result.code

    def test_text_runs_share_modifiers(self):
        node = dict(two_run_text(), opacity=0.5, textAutoResize="NONE")
        result = run([node], "swiftui")
        assert result.code.startswith('(Text("Hello ")')
        assert result.code.endswith(
            '+ Text("World").font(.custom("Inter", size: 14)).fontWeight(.bold))\n'
            ".frame(width: 40, height: 20)\n"
            ".opacity(0.5)"
        )

    def test_single_run_is_not_parenthesized(self):
        result = run([text()], "swiftui")
        assert result.code.startswith('Text("Hi")')

    def test_multiple_roots_in_vstack(self):
        result = run([raw("a"), raw("b")], "swiftui")
        assert result.code.startswith("VStack {")
        assert result.code.endswith("}")

    def test_variable_color_asset(self):
        host = LocalDesignHost({"v1": {"name": "Brand", "value": "#ff0000"}})
        result = run([raw("1", fills=[solid(variable_id="v1")])], "swiftui", host=host)
        assert '.background(Color("Brand"))' in result.code

    def test_layer_name_comment(self):
        result = run([raw("1", name="Card")], "swiftui", show_layer_names=True)
        assert result.code.startswith("// Card\n")


# ════════════════════════════════════════════════════════════
# Compose
# ════════════════════════════════════════════════════════════

class TestComposeBackend:

    def test_box_modifiers(self):
        result = run([raw("1", fills=[solid()])], "compose")
        assert result.code.startswith("Box(")
        assert ".width(100.dp)" in result.code
        assert ".background(Color(0xFFFF0000))" in result.code

    def test_row_arrangement(self):
        result = run([row([bar("a"), bar("b")])], "compose")
        assert "horizontalArrangement = Arrangement.spacedBy(8.dp)" in result.code
        assert "verticalAlignment = Alignment.CenterVertically" in result.code
        assert ".padding(horizontal = 8.dp, vertical = 4.dp)" in result.code

    def test_fill_child_uses_weight(self):
        result = run([row([bar("a", layoutGrow=1), bar("b")])], "compose")
        assert ".weight(1f)" in result.code

    def test_shadow_becomes_elevation(self):
        effect = {"type": "DROP_SHADOW", "visible": True, "radius": 4}
        result = run([bar(effects=[effect])], "compose")
        assert ".shadow(elevation = 4.dp)" in result.code
        assert result.diagnostics[0].severity == Severity.INFO
        assert result.diagnostics[0].message == "shadow on 'Bar' approximated as elevation"

    def test_font_family_reported_once(self):
        result = run([raw("1", box=(0, 0, 200, 200), children=[text("a"), text("b")])], "compose")
        assert result.warnings.count("font family 'Inter' must be provided as a FontFamily resource") == 1

    def test_vector_references_drawable(self):
        result = run([icon_frame()], "compose", host=LocalDesignHost(vectors={"v": SVG}))
        assert "painterResource(id = R.drawable.icon)" in result.code
        assert any("inline vector markup is not supported in Compose" in w for w in result.warnings)

    def test_annotated_string(self):
        result = run([two_run_text()], "compose")
        assert "buildAnnotatedString {" in result.code
        assert 'withStyle(SpanStyle(fontSize = 14.sp, fontWeight = FontWeight.Bold)) { append("World") }' in result.code

    def test_text_escapes_dollar(self):
        result = run([text(characters="$5")], "compose")
        assert 'text = "\\$5"' in result.code

    def test_multiple_roots_in_column(self):
        result = run([raw("a"), raw("b")], "compose")
        assert result.code.startswith("Column {")
