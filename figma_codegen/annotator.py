"""
Annotator — async variable resolution and vector export.

Runs after normalization. Per node, one paint task and (for top-most
flattenable nodes) one export task; sibling subtrees run concurrently and
every host call goes through one semaphore.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Optional

from .alt_nodes import AltNode
from .colors import VariableBinding, with_binding
from .diagnostics import ConversionCancelled, Diagnostics

logger = logging.getLogger(__name__)

_FAILED = object()


async def join_all(coros) -> list:
    """``gather`` that cancels the remaining tasks when one fails."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


class Annotator:

    def __init__(
        self,
        host,
        config,
        diagnostics: Diagnostics,
        abort_check: Optional[Callable[[], bool]] = None,
    ):
        self.host = host
        self.config = config
        self.diagnostics = diagnostics
        self.abort_check = abort_check
        self._semaphore = asyncio.Semaphore(max(1, config.max_concurrency))
        # variable id → VariableBinding | _FAILED (redundant writes store equal values)
        self._variables: dict = {}

    async def annotate(self, root: AltNode) -> None:
        await self._annotate_node(root, inside_export=False)

    async def _annotate_node(self, node: AltNode, inside_export: bool) -> None:
        if self.abort_check is not None and self.abort_check():
            raise ConversionCancelled("conversion aborted")
        if inside_export:
            # Rendered from the ancestor's markup; nothing here is emitted.
            return

        exported = self.config.embed_vectors and node.can_flatten_to_vector
        jobs = [self._resolve_paints(node)]
        if exported:
            jobs.append(self._export_vector(node))
        jobs.extend(self._annotate_node(child, exported) for child in node.children)
        await join_all(jobs)

    # ════════════════════════════════════════════════════════════
    # Variables
    # ════════════════════════════════════════════════════════════

    async def _resolve_paints(self, node: AltNode) -> None:
        if not self.config.use_color_variables:
            return
        node.fills = tuple(await join_all(self._bind(p, node) for p in node.fills))
        node.strokes = tuple(await join_all(self._bind(p, node) for p in node.strokes))
        if node.text_runs:
            runs = []
            for run in node.text_runs:
                fill = await self._bind(run.fill, node) if run.fill is not None else None
                runs.append(replace(run, fill=fill) if fill is not run.fill else run)
            node.text_runs = tuple(runs)

    async def _bind(self, paint, node: AltNode):
        variable_id = getattr(paint, "variable_id", None)
        if variable_id is None:
            return paint
        binding = await self._variable(variable_id, node)
        if binding is None:
            return paint
        return with_binding(paint, binding)

    async def _variable(self, variable_id: str, node: AltNode) -> Optional[VariableBinding]:
        cached = self._variables.get(variable_id)
        if cached is None:
            async with self._semaphore:
                # another task may have filled the cache while this one waited
                cached = self._variables.get(variable_id)
                if cached is None:
                    try:
                        value = await self.host.resolve_variable(variable_id)
                        cached = VariableBinding(name=value.name, fallback_hex=value.literal_hex)
                    except Exception as e:
                        logger.debug("variable %s failed: %r", variable_id, e)
                        cached = _FAILED
                    self._variables[variable_id] = cached
        if cached is _FAILED:
            self.diagnostics.warn(
                f"variable {variable_id} could not be resolved, using literal color", node
            )
            return None
        return cached

    # ════════════════════════════════════════════════════════════
    # Vectors
    # ════════════════════════════════════════════════════════════

    async def _export_vector(self, node: AltNode) -> None:
        async with self._semaphore:
            try:
                markup = await self.host.export_vector_markup(node)
                if not isinstance(markup, str) or not markup.strip():
                    raise ValueError("empty markup")
            except Exception as e:
                node.vector_export_failed = True
                self.diagnostics.warn(f"vector export failed for '{node.unique_name}': {e}", node)
                return
        node.embedded_vector_markup = markup.strip()
        logger.debug("exported vector %s (%d chars)", node.id, len(node.embedded_vector_markup))
