"""
命名引擎 — run-scoped unique layer names

The first occurrence of a base name keeps it bare; later ones get a
zero-padded suffix (``Icon``, ``Icon_01``, ``Icon_02``) in document order.
The counter is only touched by the synchronous normalization pass.
"""

import re
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class NamingConfig:
    """命名引擎設定."""
    suffix_separator: str = "_"
    suffix_width: int = 2
    pascal_case: bool = True
    fallback_names: dict = field(default_factory=lambda: {
        "FRAME": "Frame", "COMPONENT": "Component", "COMPONENT_SET": "ComponentSet",
        "INSTANCE": "Instance", "SECTION": "Section", "GROUP": "Group",
        "RECTANGLE": "Rectangle", "LINE": "Line", "ELLIPSE": "Ellipse",
        "TEXT": "Text", "VECTOR": "Vector", "STAR": "Star",
        "REGULAR_POLYGON": "Polygon", "POLYGON": "Polygon",
        "BOOLEAN_OPERATION": "BooleanOperation",
    })
    custom_overrides: dict = field(default_factory=dict)


class NamingEngine:
    """將圖層名稱轉成整個 run 內唯一的識別名稱."""

    def __init__(self, config: Optional[NamingConfig] = None):
        self.config = config or NamingConfig()
        self._counters: dict[str, int] = {}
        self._used: set[str] = set()

    def reset(self) -> None:
        self._counters.clear()
        self._used.clear()

    def resolve_name(self, raw_name: str, source_type: str = "", node_id: Optional[str] = None) -> str:
        """Assign the next unique name for ``raw_name`` (call in traversal order)."""
        if node_id and node_id in self.config.custom_overrides:
            raw_name = self.config.custom_overrides[node_id]
        base = self.base_name(raw_name, source_type)

        count = self._counters.get(base, 0)
        candidate = base if count == 0 else self._suffixed(base, count)
        # A generated name may collide with a literal name seen earlier.
        while candidate in self._used:
            count += 1
            candidate = self._suffixed(base, count)

        self._counters[base] = count + 1
        self._used.add(candidate)
        return candidate

    def base_name(self, raw_name: str, source_type: str = "") -> str:
        name = self._sanitize(raw_name or "")
        if not name:
            name = self.config.fallback_names.get(source_type.upper(), "Node")
        if name[0].isdigit():
            name = f"{self.config.fallback_names.get(source_type.upper(), 'Node')}{name}"
        return name

    def _suffixed(self, base: str, count: int) -> str:
        return f"{base}{self.config.suffix_separator}{count:0{self.config.suffix_width}d}"

    def _sanitize(self, name: str) -> str:
        name = name.strip()
        if not self.config.pascal_case:
            return re.sub(r"[^A-Za-z0-9_]+", "_", name).strip("_")
        return self._to_pascal_case(name)

    def _to_pascal_case(self, s: str) -> str:
        s = re.sub(r'[^a-zA-Z0-9]', ' ', s)
        words = s.split()
        return ''.join(w[:1].upper() + w[1:] for w in words)


def preview_naming_tree(node, indent: int = 0) -> str:
    """除錯用：印出 AltNode 命名樹."""
    lines = []
    prefix = "  " * indent
    label = f"{prefix}├─ {node.unique_name}  [{node.kind.value}]"
    if node.name and node.name != node.unique_name:
        label += f"  <{node.name}>"
    if node.can_flatten_to_vector:
        label += "  (vector)"
    if node.layout is not None:
        label += f"  {node.layout.direction.value.lower()}"
    lines.append(label)
    for child in node.children:
        lines.append(preview_naming_tree(child, indent + 1))
    return "\n".join(lines)
