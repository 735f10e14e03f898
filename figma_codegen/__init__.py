"""
figma-codegen — Figma 設計樹 → 程式碼（html / tailwind / flutter / swiftui / compose）

正規化 Figma JSON 為 AltNode 樹，非同步補齊變數與向量，再交由各後端產生程式碼。
"""

__version__ = "0.5.0"

from .naming_engine import NamingConfig, NamingEngine, preview_naming_tree
from .diagnostics import ConversionCancelled, ConversionError, Diagnostic, Diagnostics, Severity
from .config import RunConfig, load_config, run_config_from_dict, validate_config
from .ir_builder import build_forest, forest_to_dict, save_ir
from .figma_reader import FigmaAPIClient, FigmaDesignHost, LocalDesignHost, load_design_file
from .generator import BACKENDS, generate_code, get_backend, wrap_page
from .design_tokens import extract_design_tokens, palette_summary
from .pipeline import ConversionResult, convert, convert_async, convert_file, generate_project

__all__ = [
    "__version__",
    "NamingConfig",
    "NamingEngine",
    "preview_naming_tree",
    "ConversionCancelled",
    "ConversionError",
    "Diagnostic",
    "Diagnostics",
    "Severity",
    "RunConfig",
    "load_config",
    "run_config_from_dict",
    "validate_config",
    "build_forest",
    "forest_to_dict",
    "save_ir",
    "FigmaAPIClient",
    "FigmaDesignHost",
    "LocalDesignHost",
    "load_design_file",
    "BACKENDS",
    "generate_code",
    "get_backend",
    "wrap_page",
    "extract_design_tokens",
    "palette_summary",
    "ConversionResult",
    "convert",
    "convert_async",
    "convert_file",
    "generate_project",
]
