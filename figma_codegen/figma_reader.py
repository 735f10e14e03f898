"""
Figma REST API 讀取與設計主機（Design Host）

Read-only REST wrapper plus the two collaborators the annotator talks to:
variable lookup and SVG export, backed either by the REST API or by a
local JSON export.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import requests

from .colors import parse_color, to_hex_alpha

logger = logging.getLogger(__name__)


class FigmaAPIClient:
    """Figma REST API 唯讀封裝."""

    BASE_URL = "https://api.figma.com/v1"

    def __init__(self, token: str, timeout: float = 30.0):
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "X-Figma-Token": token,
            "Content-Type": "application/json",
        })

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        resp = self.session.get(url, params=params or {}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def get_file(self, file_key: str, node_ids: Optional[list] = None) -> dict:
        url = f"{self.BASE_URL}/files/{file_key}"
        params = {}
        if node_ids:
            params["ids"] = ",".join(node_ids)
        return self._get(url, params)

    def get_file_nodes(self, file_key: str, node_ids: list) -> dict:
        url = f"{self.BASE_URL}/files/{file_key}/nodes"
        return self._get(url, {"ids": ",".join(node_ids)})

    def get_images(self, file_key: str, node_ids: list, format: str = "png", scale: int = 2) -> dict:
        url = f"{self.BASE_URL}/images/{file_key}"
        params = {"ids": ",".join(node_ids), "format": format}
        if format != "svg":
            params["scale"] = scale
        return self._get(url, params)

    def get_local_variables(self, file_key: str) -> dict:
        url = f"{self.BASE_URL}/files/{file_key}/variables/local"
        return self._get(url)

    def download_text(self, url: str) -> str:
        """Rendered assets live on S3; the Figma token header must not be sent there."""
        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text


# ════════════════════════════════════════════════════════════
# Design hosts
# ════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VariableValue:
    name: str
    literal_hex: str


class DesignHost(Protocol):
    """Async collaborator; any raised exception counts as a failure."""

    async def resolve_variable(self, variable_id: str) -> VariableValue: ...

    async def export_vector_markup(self, node) -> str: ...


class LocalDesignHost:
    """Host backed by the ``variables`` / ``vectors`` maps of a JSON export."""

    def __init__(self, variables: Optional[dict] = None, vectors: Optional[dict] = None):
        self.variables = variables or {}
        self.vectors = vectors or {}

    async def resolve_variable(self, variable_id: str) -> VariableValue:
        entry = self.variables[variable_id]
        if isinstance(entry, str):
            raise ValueError(f"variable {variable_id} has no name")
        value = entry.get("value", entry.get("hex"))
        if isinstance(value, dict):
            value = to_hex_alpha(parse_color(value))
        if not isinstance(value, str):
            raise ValueError(f"variable {variable_id} has no color value")
        return VariableValue(name=entry["name"], literal_hex=value)

    async def export_vector_markup(self, node) -> str:
        markup = self.vectors[node.id]
        if not isinstance(markup, str) or not markup.strip():
            raise ValueError(f"empty vector markup for {node.id}")
        return markup


class FigmaDesignHost:
    """Host backed by the REST API; blocking calls run in worker threads."""

    MAX_ALIAS_DEPTH = 8

    def __init__(self, client: FigmaAPIClient, file_key: str):
        self.client = client
        self.file_key = file_key
        self._variables: Optional[dict] = None
        self._collections: dict = {}
        self._pending: Optional[asyncio.Task] = None

    async def _load_variables(self) -> dict:
        if self._variables is not None:
            return self._variables
        # Concurrent callers share one in-flight request per event loop.
        loop = asyncio.get_running_loop()
        if self._pending is None or self._pending.get_loop() is not loop:
            self._pending = loop.create_task(asyncio.to_thread(self.client.get_local_variables, self.file_key))
        data = await self._pending
        meta = data.get("meta", {})
        self._collections = meta.get("variableCollections", {})
        self._variables = meta.get("variables", {})
        logger.debug("loaded %d local variables", len(self._variables))
        return self._variables

    async def resolve_variable(self, variable_id: str) -> VariableValue:
        variables = await self._load_variables()
        variable = variables[variable_id]
        value = self._mode_value(variable)
        depth = 0
        while isinstance(value, dict) and value.get("type") == "VARIABLE_ALIAS":
            depth += 1
            if depth > self.MAX_ALIAS_DEPTH:
                raise ValueError(f"variable alias chain too deep at {variable_id}")
            value = self._mode_value(variables[value["id"]])
        if not isinstance(value, dict) or "r" not in value:
            raise ValueError(f"variable {variable_id} is not a color")
        return VariableValue(name=variable["name"], literal_hex=to_hex_alpha(parse_color(value)))

    def _mode_value(self, variable: dict):
        values = variable.get("valuesByMode") or {}
        collection = self._collections.get(variable.get("variableCollectionId"), {})
        default_mode = collection.get("defaultModeId")
        if default_mode in values:
            return values[default_mode]
        if not values:
            raise ValueError(f"variable {variable.get('id')} has no values")
        return next(iter(values.values()))

    async def export_vector_markup(self, node) -> str:
        data = await asyncio.to_thread(self.client.get_images, self.file_key, [node.id], "svg")
        if data.get("err"):
            raise RuntimeError(f"image export failed: {data['err']}")
        url = (data.get("images") or {}).get(node.id)
        if not url:
            raise RuntimeError(f"no SVG rendered for {node.id}")
        return await asyncio.to_thread(self.client.download_text, url)


# ════════════════════════════════════════════════════════════
# Input loading
# ════════════════════════════════════════════════════════════

def select_pages(document: dict, page_name: Optional[str], page_index: Optional[int], all_pages: bool) -> list:
    pages = document.get("children", [])
    if not pages:
        return []
    if all_pages:
        return pages
    if page_name:
        for page in pages:
            if page.get("name") == page_name:
                return [page]
        return []
    if page_index is not None:
        if 0 <= page_index < len(pages):
            return [pages[page_index]]
        return []
    return [pages[0]]


def roots_from_payload(data, page_name: Optional[str] = None) -> list:
    """Raw root nodes from any supported JSON shape."""
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        raise ValueError("design file must be a JSON object or array")

    nodes = data.get("nodes")
    if isinstance(nodes, list):
        return nodes
    if isinstance(nodes, dict):
        # GET /files/:key/nodes response
        return [entry["document"] for entry in nodes.values() if entry and entry.get("document")]

    document = data.get("document")
    if isinstance(document, dict):
        pages = select_pages(document, page_name, None, False)
        if not pages:
            raise ValueError(f"page not found: {page_name}")
        roots = []
        for page in pages:
            roots.extend(page.get("children", []))
        return roots

    if "type" in data:
        return [data]
    raise ValueError("unrecognized design file: expected 'nodes', 'document' or a node object")


def load_design_file(path: str, page_name: Optional[str] = None) -> tuple:
    """Read a local export → ``(raw_roots, LocalDesignHost)``."""
    with open(Path(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    roots = roots_from_payload(data, page_name)
    variables = data.get("variables", {}) if isinstance(data, dict) else {}
    vectors = data.get("vectors", {}) if isinstance(data, dict) else {}
    logger.debug("loaded %d roots from %s", len(roots), path)
    return roots, LocalDesignHost(variables, vectors)
