"""
Vector/Icon Classifier — which subtrees render as one inline vector.
"""

import logging

from .alt_nodes import PRIMITIVE_SHAPES, VECTOR_KINDS, AltForest, AltNode, NodeKind

logger = logging.getLogger(__name__)

STRUCTURAL_SOURCE_TYPES = frozenset({"FRAME", "COMPONENT", "COMPONENT_SET", "INSTANCE", "SECTION"})

DEFAULT_ICON_SIZE_THRESHOLD = 64


class VectorClassifier:
    """Memoized per node id; concurrent redundant writes store the same value."""

    def __init__(self, icon_size_threshold: float = DEFAULT_ICON_SIZE_THRESHOLD):
        self.icon_size_threshold = icon_size_threshold
        self._cache: dict[str, bool] = {}

    def is_flattenable(self, node: AltNode) -> bool:
        cached = self._cache.get(node.id)
        if cached is not None:
            return cached
        result = self._classify(node)
        self._cache[node.id] = result
        return result

    def _classify(self, node: AltNode) -> bool:
        # 1. shapes and vectors; primitive shapes only when icon-sized
        if node.kind in PRIMITIVE_SHAPES or node.kind in VECTOR_KINDS:
            if node.kind in VECTOR_KINDS or self._is_icon_sized(node):
                return True

        # 2. explicit SVG export marker
        if node.export_as_svg:
            return True

        # 3. containers made only of flattenable shapes
        if node.kind == NodeKind.CONTAINER:
            if not node.children:
                return False
            for child in node.children:
                if child.kind in (NodeKind.TEXT, NodeKind.CONTAINER):
                    return False
                if child.source_type in STRUCTURAL_SOURCE_TYPES:
                    return False
            return all(self.is_flattenable(child) for child in node.children)

        return False

    def _is_icon_sized(self, node: AltNode) -> bool:
        return (
            node.geometry.width <= self.icon_size_threshold
            and node.geometry.height <= self.icon_size_threshold
        )

    def classify_forest(self, forest: AltForest) -> None:
        for node in forest.walk():
            node.can_flatten_to_vector = self.is_flattenable(node)
        logger.debug("classified %d nodes, %d flattenable", len(self._cache), sum(self._cache.values()))
