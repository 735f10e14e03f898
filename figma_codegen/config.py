"""設定檔載入、基本驗證與 RunConfig 建構."""

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = "figma-codegen.config.json"

BACKEND_IDS = ("html", "tailwind", "flutter", "swiftui", "compose")
HTML_MODES = ("html", "jsx")

# 已知有效的頂層欄位
_KNOWN_TOP_KEYS = {"figma", "output", "rounding", "vectors", "variables", "run"}

# 各區塊已知欄位（用於拼字提示）
_KNOWN_SECTION_KEYS = {
    "figma": {"personalAccessToken", "fileKey"},
    "output": {"backend", "htmlMode", "showLayerNames", "outputDir"},
    "rounding": {"paletteThreshold", "scaleThreshold", "roundToScale", "roundColors", "scales"},
    "vectors": {"embed", "iconSizeThreshold"},
    "variables": {"enabled"},
    "run": {"maxConcurrency"},
}

_NUMERIC_KEYS = {
    "rounding": ("paletteThreshold", "scaleThreshold"),
    "vectors": ("iconSizeThreshold",),
    "run": ("maxConcurrency",),
}


@dataclass
class RunConfig:
    """One conversion run's options; backends only read these."""
    backend: str = "html"
    html_mode: str = "html"
    palette_threshold: float = 5.0
    scale_threshold: float = 15.0
    round_to_scale: bool = True
    round_colors: bool = True
    embed_vectors: bool = True
    use_color_variables: bool = True
    icon_size_threshold: float = 64
    show_layer_names: bool = False
    max_concurrency: int = 8
    scales: dict = field(default_factory=dict)

    def scale_for(self, kind: str, default=None):
        """Config-supplied scale for the current backend, e.g. ``spacing``."""
        return (self.scales.get(self.backend) or {}).get(kind, default)

    def with_overrides(self, **overrides) -> "RunConfig":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known and v is not None})


def _warn(msg: str) -> None:
    print(f"   ⚠️  [config] {msg}")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(cfg: dict) -> None:
    """對 config 做基本欄位驗證，印出警告但不拋例外。"""
    if not cfg:
        return

    # 頂層未知欄位
    for key in cfg:
        if key not in _KNOWN_TOP_KEYS:
            known = ", ".join(sorted(_KNOWN_TOP_KEYS))
            _warn(f"未知頂層欄位 '{key}'（已知欄位：{known}）")

    # 各區塊欄位
    for section, known_keys in _KNOWN_SECTION_KEYS.items():
        section_cfg = cfg.get(section, {})
        if not isinstance(section_cfg, dict):
            _warn(f"'{section}' 應為物件，目前是 {type(section_cfg).__name__}")
            continue
        for key in section_cfg:
            if key not in known_keys:
                known = ", ".join(sorted(known_keys))
                _warn(f"[{section}] 未知欄位 '{key}'（已知欄位：{known}）")

    output = cfg.get("output") if isinstance(cfg.get("output"), dict) else {}

    # output.backend 值驗證
    backend = output.get("backend")
    if backend and backend not in BACKEND_IDS:
        valid = ", ".join(BACKEND_IDS)
        _warn(f"output.backend '{backend}' 不在已知值中（{valid}）")

    # output.htmlMode 值驗證
    mode = output.get("htmlMode")
    if mode and mode not in HTML_MODES:
        valid = ", ".join(HTML_MODES)
        _warn(f"output.htmlMode '{mode}' 不在已知值中（{valid}）")

    # 數值欄位類型
    for section, keys in _NUMERIC_KEYS.items():
        section_cfg = cfg.get(section)
        if not isinstance(section_cfg, dict):
            continue
        for key in keys:
            val = section_cfg.get(key)
            if val is not None and not _is_number(val):
                _warn(f"{section}.{key} 應為數字，目前是 {type(val).__name__}")

    scales = (cfg.get("rounding") or {}).get("scales") if isinstance(cfg.get("rounding"), dict) else None
    if scales is not None and not isinstance(scales, dict):
        _warn(f"rounding.scales 應為物件，目前是 {type(scales).__name__}")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """載入 JSON 設定檔，不存在則回傳空 dict；存在則做基本驗證。"""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        try:
            cfg: Any = json.load(f)
        except json.JSONDecodeError as e:
            print(f"   ⚠️  [config] '{config_path}' 不是合法 JSON（第 {e.lineno} 行：{e.msg}），回傳空設定。")
            return {}
    if not isinstance(cfg, dict):
        print(f"   ⚠️  [config] '{config_path}' 格式錯誤，應為 JSON 物件，回傳空設定。")
        return {}
    validate_config(cfg)
    return cfg


def _section(cfg: dict, name: str) -> dict:
    value = cfg.get(name)
    return value if isinstance(value, dict) else {}


def run_config_from_dict(cfg: dict, **overrides) -> RunConfig:
    """由 config dict 建立 RunConfig；無效值沿用預設，overrides（CLI 參數）優先。"""
    output = _section(cfg, "output")
    rounding = _section(cfg, "rounding")
    vectors = _section(cfg, "vectors")
    variables = _section(cfg, "variables")
    run = _section(cfg, "run")
    defaults = RunConfig()

    def number(section: dict, key: str, default):
        val = section.get(key)
        return val if _is_number(val) else default

    def flag(section: dict, key: str, default: bool) -> bool:
        val = section.get(key)
        return val if isinstance(val, bool) else default

    backend = output.get("backend")
    mode = output.get("htmlMode")
    scales = rounding.get("scales")

    config = RunConfig(
        backend=backend if backend in BACKEND_IDS else defaults.backend,
        html_mode=mode if mode in HTML_MODES else defaults.html_mode,
        palette_threshold=number(rounding, "paletteThreshold", defaults.palette_threshold),
        scale_threshold=number(rounding, "scaleThreshold", defaults.scale_threshold),
        round_to_scale=flag(rounding, "roundToScale", defaults.round_to_scale),
        round_colors=flag(rounding, "roundColors", defaults.round_colors),
        embed_vectors=flag(vectors, "embed", defaults.embed_vectors),
        use_color_variables=flag(variables, "enabled", defaults.use_color_variables),
        icon_size_threshold=number(vectors, "iconSizeThreshold", defaults.icon_size_threshold),
        show_layer_names=flag(output, "showLayerNames", defaults.show_layer_names),
        max_concurrency=max(1, int(number(run, "maxConcurrency", defaults.max_concurrency))),
        scales=scales if isinstance(scales, dict) else {},
    )
    return config.with_overrides(**overrides)
