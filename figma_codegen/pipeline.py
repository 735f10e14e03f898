"""
Conversion pipeline — raw design tree → code + diagnostics.

Normalize and classify synchronously, annotate every root concurrently,
seal, then emit in root order. Contract violations become a result with
empty code and one fatal diagnostic; cancellation propagates.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .annotator import Annotator, join_all
from .config import RunConfig
from .design_tokens import extract_design_tokens, merge_tokens, palette_summary, write_tokens
from .diagnostics import ConversionCancelled, ConversionError, Diagnostics, Severity
from .figma_reader import (
    FigmaAPIClient,
    FigmaDesignHost,
    LocalDesignHost,
    load_design_file,
    roots_from_payload,
    select_pages,
)
from .generator import generate_code, write_page
from .ir_builder import build_forest

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    code: str
    diagnostics: list = field(default_factory=list)
    palette_summary: list = field(default_factory=list)
    tokens: dict = field(default_factory=dict)

    @property
    def warnings(self) -> list:
        return [d.message for d in self.diagnostics]

    @property
    def failed(self) -> bool:
        return any(d.severity == Severity.FATAL for d in self.diagnostics)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "paletteSummary": [c.to_dict() for c in self.palette_summary],
            "tokens": self.tokens,
        }


async def convert_async(
    raw_roots: list,
    config: Optional[RunConfig] = None,
    host=None,
    abort_check: Optional[Callable[[], bool]] = None,
) -> ConversionResult:
    config = config or RunConfig()
    host = host if host is not None else LocalDesignHost()
    diagnostics = Diagnostics()
    try:
        forest = build_forest(raw_roots, config, diagnostics, abort_check=abort_check)
        annotator = Annotator(host, config, diagnostics, abort_check=abort_check)
        await join_all(annotator.annotate(root) for root in forest.roots)
        forest.seal()
        code = generate_code(forest, config, diagnostics)
    except ConversionCancelled:
        raise
    except ConversionError as e:
        logger.debug("conversion failed: %s", e)
        fatal = Diagnostics()
        fatal.add(str(e), Severity.FATAL)
        return ConversionResult(code="", diagnostics=fatal.entries())

    return ConversionResult(
        code=code,
        diagnostics=diagnostics.entries(),
        palette_summary=palette_summary(forest),
        tokens=extract_design_tokens(forest),
    )


def convert(
    raw_roots: list,
    config: Optional[RunConfig] = None,
    host=None,
    abort_check: Optional[Callable[[], bool]] = None,
) -> ConversionResult:
    return asyncio.run(convert_async(raw_roots, config, host, abort_check))


def convert_file(path: str, config: Optional[RunConfig] = None, page_name: Optional[str] = None) -> ConversionResult:
    """Convert a local JSON export (variables / vectors come from the same file)."""
    roots, host = load_design_file(path, page_name)
    return convert(roots, config, host)


def generate_project(
    figma_token: str,
    file_key: str,
    config: RunConfig,
    output_dir: str,
    page_name: Optional[str] = None,
    page_index: Optional[int] = None,
    all_pages: bool = False,
    node_ids: Optional[list] = None,
) -> dict:
    """Fetch a Figma file, write one code file per page plus ``tokens.json``.

    Returns ``{page_name: ConversionResult}`` in page order.
    """
    client = FigmaAPIClient(figma_token)
    if node_ids:
        data = client.get_file_nodes(file_key, node_ids)
        pages = [{"name": "Selection", "children": roots_from_payload(data)}]
    else:
        data = client.get_file(file_key)
        pages = select_pages(data.get("document", {}), page_name, page_index, all_pages)
    if not pages:
        raise ValueError("No matching Figma pages found.")

    host = FigmaDesignHost(client, file_key)
    results = {}
    for page in pages:
        title = page.get("name", "Page")
        result = convert(page.get("children", []), config, host)
        results[title] = result
        if not result.failed:
            path = write_page(output_dir, config, title, result.code)
            logger.debug("wrote %s", path)

    tokens = merge_tokens(*(r.tokens for r in results.values()))
    write_tokens(str(Path(output_dir) / "tokens.json"), tokens)
    return results
