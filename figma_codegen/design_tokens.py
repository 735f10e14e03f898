"""
設計 token 擷取與調色盤摘要

從封存（sealed）的 AltForest 擷取顏色、字級、字型、圓角與間距索引，
可寫入 tokens.json 供設計系統使用。
"""

import json
import os
from dataclasses import dataclass
from typing import Optional

from .colors import primary_color, to_hex_alpha


@dataclass(frozen=True)
class PaletteColor:
    hex: str
    variable: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"hex": self.hex}
        if self.variable:
            data["variable"] = self.variable
        return data


def _node_paints(node) -> list:
    paints = list(node.fills) + list(node.strokes)
    for run in node.text_runs:
        if run.fill is not None:
            paints.append(run.fill)
    return paints


def palette_summary(forest) -> list:
    """依走訪順序列出不重複的已解析顏色（含綁定的變數名）。"""
    seen = set()
    colors = []
    for node in forest.walk():
        for paint in _node_paints(node):
            color = primary_color(paint)
            if color is None:
                continue
            binding = getattr(paint, "variable_binding", None)
            entry = PaletteColor(
                hex=to_hex_alpha(color),
                variable=binding.name if binding is not None else None,
            )
            if entry not in seen:
                seen.add(entry)
                colors.append(entry)
    return colors


def extract_design_tokens(forest) -> dict:
    """
    擷取簡易設計 token 索引（顏色、字級、字型、圓角、間距）。
    """
    tokens: dict[str, list] = {
        "colors": [],
        "fontSizes": [],
        "fontFamilies": [],
        "radii": [],
        "spacing": [],
    }
    for node in forest.walk():
        _collect_tokens(node, tokens)
    # 去重
    for key, values in tokens.items():
        tokens[key] = list(dict.fromkeys(values))
    return tokens


def _collect_tokens(node, tokens: dict) -> None:
    for paint in _node_paints(node):
        color = primary_color(paint)
        if color is not None:
            tokens["colors"].append(to_hex_alpha(color))
    for run in node.text_runs:
        tokens["fontSizes"].append(_number(run.font_size))
        tokens["fontFamilies"].append(run.font_family)
    for radius in node.corner_radii:
        if radius:
            tokens["radii"].append(_number(radius))
    layout = node.layout
    if layout is not None:
        padding = layout.padding
        for value in (layout.gap, layout.counter_gap, padding.top, padding.right, padding.bottom, padding.left):
            if value > 0:
                tokens["spacing"].append(_number(value))


def _number(value: float):
    return int(value) if float(value).is_integer() else round(value, 2)


def merge_tokens(*token_sets: dict) -> dict:
    """合併多頁 token，保留首次出現順序。"""
    merged: dict[str, list] = {}
    for tokens in token_sets:
        for key, values in tokens.items():
            merged.setdefault(key, []).extend(values)
    return {key: list(dict.fromkeys(values)) for key, values in merged.items()}


def write_tokens(path: str, tokens: dict) -> str:
    """寫入 tokens.json，回傳檔案路徑。"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(tokens, f, indent=2, ensure_ascii=False)
    return path
