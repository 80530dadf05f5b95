"""
Tests for diagnostics and the diagnostic collector.
"""

import logging
import threading

from specmodel.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind
from specmodel.identifiers import Identifier


SIMPLE = Identifier("shr.test", "Simple")


def make(kind=DiagnosticKind.CONSTRAINT_VIOLATION, message="bad"):
    return Diagnostic(kind=kind, element=SIMPLE, path=(), message=message)


class TestDiagnostic:
    """Test diagnostic records."""

    def test_incomplete_is_not_error(self):
        """Only INCOMPLETE is informational."""
        assert not DiagnosticKind.INCOMPLETE.is_error
        for kind in DiagnosticKind:
            if kind is not DiagnosticKind.INCOMPLETE:
                assert kind.is_error

    def test_str_includes_kind_and_location(self):
        """Rendered diagnostics name kind, element and path."""
        d = Diagnostic(
            kind=DiagnosticKind.UNRESOLVED_REFERENCE,
            element=SIMPLE,
            path=(Identifier("shr.test", "Coded"),),
            message="Element shr.test.Coded not found",
        )
        text = str(d)
        assert text.startswith("UnresolvedReference at shr.test.Simple[shr.test.Coded]")
        assert "not found" in text

    def test_equal_by_content(self):
        """Diagnostics are value objects."""
        assert make() == make()
        assert len({make(), make()}) == 1


class TestDiagnosticCollector:
    """Test the append-only collector."""

    def test_record_and_read(self):
        """Recorded diagnostics are returned in order."""
        collector = DiagnosticCollector()
        collector.record(make(message="one"))
        collector.record(make(DiagnosticKind.INCOMPLETE, "two"))
        assert len(collector) == 2
        assert [d.message for d in collector] == ["one", "two"]
        assert collector.has_any()
        assert collector.has_errors()

    def test_only_informational(self):
        """INCOMPLETE alone is not an error."""
        collector = DiagnosticCollector()
        collector.record(make(DiagnosticKind.INCOMPLETE))
        assert collector.has_any()
        assert not collector.has_errors()

    def test_of_kind(self):
        """Filter by kind."""
        collector = DiagnosticCollector()
        collector.record(make(DiagnosticKind.CYCLIC_INHERITANCE))
        collector.record(make())
        assert len(collector.of_kind(DiagnosticKind.CYCLIC_INHERITANCE)) == 1

    def test_clear(self):
        """clear empties the collector."""
        collector = DiagnosticCollector()
        collector.record(make())
        collector.clear()
        assert not collector.has_any()
        assert collector.all() == []

    def test_all_returns_copy(self):
        """Callers cannot mutate the collector through all()."""
        collector = DiagnosticCollector()
        collector.record(make())
        collector.all().clear()
        assert len(collector) == 1

    def test_errors_logged_as_warnings(self, caplog):
        """Error diagnostics go to the package logger at WARNING."""
        collector = DiagnosticCollector()
        with caplog.at_level(logging.INFO, logger="specmodel"):
            collector.record(make(message="widened"))
            collector.record(make(DiagnosticKind.INCOMPLETE, "pending"))
        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert any("widened" in m and lvl == logging.WARNING for m, lvl in levels.items())
        assert any("pending" in m and lvl == logging.INFO for m, lvl in levels.items())

    def test_concurrent_record(self):
        """Appends from several threads are all kept."""
        collector = DiagnosticCollector()

        def worker(n):
            for i in range(50):
                collector.record(make(message=f"{n}-{i}"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(collector) == 200
