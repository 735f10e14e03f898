#!/usr/bin/env python3
"""
figma-codegen CLI — Figma 設計樹 → 程式碼

  figma-codegen convert design.json --backend flutter   # 本地 JSON → 程式碼
  figma-codegen generate --file-key KEY --backend html  # Figma API → 專案檔
  figma-codegen preview design.json                     # 預覽命名樹
  figma-codegen watch design.json                       # 檔案變更時自動轉換
"""

import argparse
import asyncio
import json
import logging
import os
import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from figma_codegen import __version__

from .config import BACKEND_IDS, DEFAULT_CONFIG_PATH, HTML_MODES, load_config, run_config_from_dict
from .design_tokens import write_tokens
from .diagnostics import ConversionCancelled, Diagnostics, Severity
from .figma_reader import load_design_file
from .ir_builder import build_forest, forest_to_dict, save_ir
from .naming_engine import preview_naming_tree
from .pipeline import convert_async, generate_project

_SEVERITY_ICONS = {
    Severity.INFO: "ℹ️ ",
    Severity.WARNING: "⚠️ ",
    Severity.FATAL: "❌",
}


def _run_config(args, config: dict):
    return run_config_from_dict(
        config,
        backend=getattr(args, "backend", None),
        html_mode=getattr(args, "mode", None),
        embed_vectors=False if getattr(args, "no_vectors", False) else None,
        use_color_variables=False if getattr(args, "no_variables", False) else None,
        show_layer_names=True if getattr(args, "show_layer_names", False) else None,
    )


def _print_diagnostics(diagnostics: list) -> None:
    for diag in diagnostics:
        where = f" ({diag.node_id})" if diag.node_id else ""
        print(f"   {_SEVERITY_ICONS[diag.severity]} {diag.message}{where}")


def _write_text(path: str, content: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


async def perform_convert(input_path: str, args, config: dict):
    """Core convert logic, shared by convert and watch commands."""
    run_config = _run_config(args, config)
    print(f"🛠️  Converting {input_path} → {run_config.backend}")

    try:
        roots, host = load_design_file(input_path, args.page)
    except (OSError, ValueError) as e:
        print(f"   ❌ 無法讀取設計檔：{e}")
        return None

    try:
        result = await convert_async(roots, run_config, host)
    except ConversionCancelled:
        print("   ⚠️  Conversion cancelled.")
        return None

    if args.json:
        payload = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
        if args.output:
            _write_text(args.output, payload + "\n")
            print(f"   ✅ Saved to {args.output}")
        else:
            print(payload)
        return result

    _print_diagnostics(result.diagnostics)
    if result.failed:
        print("   ❌ Conversion failed.")
        return result

    if args.output:
        _write_text(args.output, result.code + "\n")
        print(f"   ✅ Saved to {args.output}")
    else:
        print(result.code)

    if args.tokens:
        write_tokens(args.tokens, result.tokens)
        print(f"   🎨 Tokens saved to {args.tokens}")
    return result


def cmd_convert(args, config: dict):
    """Convert: 本地 JSON 匯出 → 程式碼."""
    asyncio.run(perform_convert(args.input, args, config))


_WATCHED_EXTENSIONS = (".json",)


class ChangeHandler(FileSystemEventHandler):
    """檔案變更事件處理器，帶 debounce 防抖。"""

    def __init__(self, callback, loop: asyncio.AbstractEventLoop, debounce: float = 1.0, target: str = None):
        self.callback = callback
        self.loop = loop
        self.last_trigger = 0.0
        self.debounce_seconds = debounce
        self.target = Path(target).resolve() if target else None

    def on_modified(self, event):
        if event.is_directory:
            return
        if not event.src_path.endswith(_WATCHED_EXTENSIONS):
            return
        if self.target is not None and Path(event.src_path).resolve() != self.target:
            return
        current_time = time.time()
        if current_time - self.last_trigger < self.debounce_seconds:
            return
        self.last_trigger = current_time
        print(f"\n🔄 File changed: {event.src_path}")
        # 透過 threadsafe 把 coroutine 丟進 loop（loop 在獨立執行緒中 run_forever）
        asyncio.run_coroutine_threadsafe(self.callback(), self.loop)


def cmd_watch(args, config: dict):
    """Watch: 監聽設計檔變更並自動執行 convert."""
    input_path = args.input
    watch_dir = str(Path(input_path).resolve().parent)
    print(f"👀 Watching '{input_path}' for changes...")
    print("   Press Ctrl+C to stop.")

    # 在獨立執行緒中運行 event loop，避免主執行緒與 coroutine_threadsafe 競爭
    loop = asyncio.new_event_loop()

    async def convert_task():
        await perform_convert(input_path, args, config)

    def run_loop():
        asyncio.set_event_loop(loop)
        loop.run_forever()

    loop_thread = threading.Thread(target=run_loop, daemon=True)
    loop_thread.start()

    # 初始執行一次 convert（等待完成）
    future = asyncio.run_coroutine_threadsafe(convert_task(), loop)
    try:
        future.result(timeout=120)
    except Exception as e:
        print(f"   ⚠️  Initial convert failed: {e}")

    event_handler = ChangeHandler(convert_task, loop, target=input_path)
    observer = Observer()
    observer.schedule(event_handler, path=watch_dir, recursive=False)
    observer.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n👋 Stopping watch...")
        observer.stop()
    finally:
        observer.join()
        loop.call_soon_threadsafe(loop.stop)


def cmd_preview(args, config: dict):
    """預覽命名樹."""
    print(f"👁️  Preview naming tree: {args.input}")
    try:
        roots, _ = load_design_file(args.input, args.page)
    except (OSError, ValueError) as e:
        print(f"❌ 無法讀取設計檔：{e}")
        return

    run_config = _run_config(args, config)
    diagnostics = Diagnostics()
    forest = build_forest(roots, run_config, diagnostics)

    if args.json:
        print(json.dumps(forest_to_dict(forest), indent=2, ensure_ascii=False))
        return
    if args.save_ir:
        print(f"   ✅ IR saved to {save_ir(forest, args.save_ir)}")

    for root in forest.roots:
        print(preview_naming_tree(root))
    print(f"\nTotal nodes: {len(forest.store)}")
    _print_diagnostics(diagnostics.entries())


def cmd_generate(args, config: dict):
    """Generate: 從 Figma API 產生每頁一個程式檔與 tokens.json."""
    figma_cfg = config.get("figma", {}) if isinstance(config.get("figma"), dict) else {}
    token = figma_cfg.get("personalAccessToken") or os.environ.get("FIGMA_TOKEN")
    file_key = args.file_key or figma_cfg.get("fileKey")

    if not token:
        print(f"❌ 請設定 FIGMA_TOKEN 環境變數，或在 {DEFAULT_CONFIG_PATH} 的 figma.personalAccessToken 設定。")
        print("   取得方式：Figma → Settings → Personal access tokens → 新增")
        return
    if not file_key:
        print("❌ 請使用 --file-key 或在 config 的 figma.fileKey 設定 Figma 檔案 key。")
        return

    run_config = _run_config(args, config)
    output_cfg = config.get("output", {}) if isinstance(config.get("output"), dict) else {}
    output_dir = args.output or output_cfg.get("outputDir") or "./generated"
    node_ids = [n.strip() for n in args.node_ids.split(",") if n.strip()] if args.node_ids else None

    print(f"📥 Generating {run_config.backend} from Figma: {file_key}")
    try:
        results = generate_project(
            figma_token=token,
            file_key=file_key,
            config=run_config,
            output_dir=output_dir,
            page_name=args.page,
            page_index=args.page_index,
            all_pages=args.all_pages,
            node_ids=node_ids,
        )
    except Exception as e:
        # Figma API：友善錯誤訊息
        status = getattr(getattr(e, "response", None), "status_code", None)
        if status == 403:
            print("❌ Figma API 403：Token 無效或已過期，請重新產生 FIGMA_TOKEN。")
        elif status == 404:
            print(f"❌ Figma API 404：找不到檔案 '{file_key}'，請確認 file key 是否正確。")
        else:
            print(f"❌ Generate failed: {e}")
        return

    for page_name, result in results.items():
        print(f"   📄 {page_name}")
        _print_diagnostics(result.diagnostics)
    print(f"✅ Generated {run_config.backend} code to {output_dir}")


def _add_run_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--backend", "-b", choices=BACKEND_IDS, help="Output backend")
    p.add_argument("--mode", choices=HTML_MODES, help="Markup mode for html/tailwind")
    p.add_argument("--no-vectors", action="store_true", help="Do not embed vector markup")
    p.add_argument("--no-variables", action="store_true", help="Use literal colors instead of variables")
    p.add_argument("--show-layer-names", action="store_true", help="Annotate output with layer names")


def main():
    parser = argparse.ArgumentParser(
        description="figma-codegen: Figma design tree → html / tailwind / flutter / swiftui / compose",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config path")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    convert_p = sub.add_parser("convert", help="Local JSON → code",
        epilog="Examples:\n  figma-codegen convert design.json\n  figma-codegen convert design.json --backend tailwind --mode jsx -o App.tsx\n  figma-codegen convert design.json --json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    convert_p.add_argument("input", help="Design JSON (REST file/nodes response or {nodes, variables, vectors})")
    _add_run_options(convert_p)
    convert_p.add_argument("--output", "-o", help="Output file (default: stdout)")
    convert_p.add_argument("--tokens", help="Write design tokens JSON to this path")
    convert_p.add_argument("--page", help="Page name (REST file responses)")
    convert_p.add_argument("--json", action="store_true", help="Print the full result as JSON")

    gen_p = sub.add_parser("generate", help="Figma API → code files",
        epilog="Examples:\n  figma-codegen generate --file-key ABC123 --backend flutter --output ./out\n  figma-codegen generate --file-key ABC123 --all-pages",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    gen_p.add_argument("--file-key", help="Figma file key")
    _add_run_options(gen_p)
    gen_p.add_argument("--output", help="Output directory")
    gen_p.add_argument("--page", help="Page name to export")
    gen_p.add_argument("--page-index", type=int, help="Page index to export")
    gen_p.add_argument("--all-pages", action="store_true", help="Export all pages")
    gen_p.add_argument("--node-ids", help="Comma-separated node ids to export instead of pages")

    preview_p = sub.add_parser("preview", help="Preview naming tree",
        epilog="Examples:\n  figma-codegen preview design.json\n  figma-codegen preview design.json --json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    preview_p.add_argument("input", help="Design JSON")
    preview_p.add_argument("--page", help="Page name (REST file responses)")
    preview_p.add_argument("--json", action="store_true", help="Print the IR as JSON")
    preview_p.add_argument("--save-ir", metavar="DIR", help="Also write ir.json into DIR")

    watch_p = sub.add_parser("watch", help="Re-convert when the design file changes",
        epilog="Examples:\n  figma-codegen watch design.json --backend swiftui -o ContentView.swift",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    watch_p.add_argument("input", help="Design JSON")
    _add_run_options(watch_p)
    watch_p.add_argument("--output", "-o", help="Output file (default: stdout)")
    watch_p.add_argument("--tokens", help="Write design tokens JSON to this path")
    watch_p.add_argument("--page", help="Page name (REST file responses)")
    watch_p.add_argument("--json", action="store_true", help="Print the full result as JSON")

    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    config = load_config(args.config)

    if args.command == "convert":
        cmd_convert(args, config)
    elif args.command == "generate":
        cmd_generate(args, config)
    elif args.command == "preview":
        cmd_preview(args, config)
    elif args.command == "watch":
        cmd_watch(args, config)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
