"""
Watch Mode / ChangeHandler debounce 單元測試
不需要真實檔案系統事件，用 mock event 物件測試防抖與 loop 排程邏輯。
"""
import asyncio
import time
import pytest
from unittest.mock import MagicMock, patch

from figma_codegen.cli import ChangeHandler, _WATCHED_EXTENSIONS


# ─── helper: 建立假 FileModifiedEvent ────────────────────────────────────────

def make_event(src_path: str, is_directory: bool = False):
    ev = MagicMock()
    ev.is_directory = is_directory
    ev.src_path = src_path
    return ev


# ─── ChangeHandler.on_modified 過濾邏輯 ──────────────────────────────────────

class TestChangeHandlerFilter:
    """測試 on_modified 的過濾條件：目錄、副檔名、目標檔案。"""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()

        async def dummy_callback():
            pass

        self.handler = ChangeHandler(dummy_callback, self.loop, debounce=0.0)

    def teardown_method(self):
        self.loop.close()

    def test_directory_event_ignored(self):
        ev = make_event("/designs/", is_directory=True)
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            mock_run.assert_not_called()

    def test_non_watched_extension_ignored(self):
        for ext in [".png", ".md", ".fig", ".lock", ".swp"]:
            ev = make_event(f"/designs/file{ext}")
            with patch("asyncio.run_coroutine_threadsafe") as mock_run:
                self.handler.on_modified(ev)
                mock_run.assert_not_called()

    def test_watched_extensions_trigger_callback(self):
        for ext in _WATCHED_EXTENSIONS:
            ev = make_event(f"/designs/home{ext}")
            with patch("asyncio.run_coroutine_threadsafe") as mock_run:
                self.handler.last_trigger = 0  # 重置 debounce
                self.handler.on_modified(ev)
                mock_run.assert_called_once()

    def test_callback_receives_correct_loop(self):
        ev = make_event("/designs/home.json")
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            # 第二個位置參數是 loop
            assert mock_run.call_args[0][1] is self.loop
            mock_run.call_args[0][0].close()


class TestChangeHandlerTarget:
    """指定 target 時只回應該檔案。"""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()

        async def dummy():
            pass

        self.handler = ChangeHandler(dummy, self.loop, debounce=0.0, target="/designs/home.json")

    def teardown_method(self):
        self.loop.close()

    def test_other_json_in_same_directory_ignored(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event("/designs/tokens.json"))
            mock_run.assert_not_called()

    def test_target_file_triggers(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event("/designs/home.json"))
            assert mock_run.call_count == 1
            mock_run.call_args[0][0].close()


# ─── ChangeHandler debounce 邏輯 ─────────────────────────────────────────────

class TestChangeHandlerDebounce:
    """測試防抖：短時間內重複觸發只呼叫一次 callback。"""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()

        async def dummy():
            pass

        self.handler = ChangeHandler(dummy, self.loop, debounce=0.5)

    def teardown_method(self):
        self.loop.close()

    def test_debounce_blocks_rapid_events(self):
        ev = make_event("/designs/home.json")

        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            # 立即再觸發（在 debounce 視窗內）
            self.handler.on_modified(ev)
            self.handler.on_modified(ev)
            assert mock_run.call_count == 1
            mock_run.call_args[0][0].close()

    def test_debounce_allows_event_after_window(self):
        ev = make_event("/designs/home.json")

        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            assert mock_run.call_count == 1

            # 模擬時間過了超過 debounce 視窗
            self.handler.last_trigger = time.time() - 1.0

            self.handler.on_modified(ev)
            assert mock_run.call_count == 2
            for args, _ in mock_run.call_args_list:
                args[0].close()

    def test_debounce_timestamp_updated(self):
        ev = make_event("/designs/home.json")
        before = time.time() - 0.01

        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            assert self.handler.last_trigger >= before
            mock_run.call_args[0][0].close()


# ─── _WATCHED_EXTENSIONS 常數驗證 ────────────────────────────────────────────

def test_watched_extensions_includes_json():
    assert ".json" in _WATCHED_EXTENSIONS


def test_watched_extensions_excludes_binary_types():
    for ext in (".png", ".jpg", ".fig", ".svg"):
        assert ext not in _WATCHED_EXTENSIONS, f"{ext} 不應在 _WATCHED_EXTENSIONS"
