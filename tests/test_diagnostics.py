"""
Diagnostics 收集器測試：嚴重度、文件順序排序、JSON 形式。
"""
from types import SimpleNamespace

from figma_codegen.diagnostics import Diagnostic, Diagnostics, Severity


def node(order, node_id):
    return SimpleNamespace(order=order, id=node_id)


class TestDiagnostics:
    def setup_method(self):
        self.diagnostics = Diagnostics()

    def test_severity_levels(self):
        # 非致命問題只有 info / warning，合約違反才是 fatal
        assert [s.value for s in Severity] == ["info", "warning", "fatal"]
        assert not hasattr(self.diagnostics, "error")

    def test_document_order_then_insertion(self):
        self.diagnostics.warn("late node", node(5, "b"))
        self.diagnostics.info("early node", node(1, "a"))
        self.diagnostics.warn("run level")
        self.diagnostics.warn("early node again", node(1, "a"))
        assert self.diagnostics.messages() == ["run level", "early node", "early node again", "late node"]

    def test_entries_carry_severity_and_node(self):
        self.diagnostics.info("hello", node(0, "1:2"))
        (entry,) = self.diagnostics.entries()
        assert entry == Diagnostic("hello", Severity.INFO, "1:2")
        assert entry.to_dict() == {"message": "hello", "severity": "info", "nodeId": "1:2"}

    def test_run_level_dict_has_no_node(self):
        self.diagnostics.warn("bad config")
        assert [d.to_dict() for d in self.diagnostics] == [{"message": "bad config", "severity": "warning"}]
        assert len(self.diagnostics) == 1
