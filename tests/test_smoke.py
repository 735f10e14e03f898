"""
Smoke tests：驗證套件可匯入、版本與公開 API 存在。
"""
import pytest


def test_import_package():
    """套件可正常匯入"""
    import figma_codegen
    assert figma_codegen.__version__ == "0.5.0"


def test_public_api():
    """公開 API 可從 figma_codegen 取得"""
    from figma_codegen import (
        __version__,
        BACKENDS,
        ConversionResult,
        RunConfig,
        build_forest,
        convert,
        convert_async,
        get_backend,
        load_config,
        preview_naming_tree,
        save_ir,
    )
    assert __version__ == "0.5.0"
    assert set(BACKENDS) == {"html", "tailwind", "flutter", "swiftui", "compose"}
    assert callable(convert)
    assert callable(build_forest)
    assert RunConfig().backend == "html"


def test_cli_entrypoint_importable():
    from figma_codegen.cli import main
    assert callable(main)
