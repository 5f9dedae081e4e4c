"""
CLI and logging tests.
"""

import json
import logging

import pytest

from signet.cli import main
from signet.ingestion.serialization import CANONICAL_FORMAT
from signet.observability.logging import StructuredLogFormatter, configure_logging

GLOBAL_ARGS = ["--plain-logs", "--log-level", "WARNING", "--executor", "thread", "--workers", "1"]


@pytest.fixture
def document_path(tmp_path, sample_document):
    path = tmp_path / "network.json"
    path.write_text(json.dumps(sample_document), encoding="utf-8")
    return path


class TestCommands:
    def test_inspect(self, document_path, capsys):
        assert main(GLOBAL_ARGS + ["inspect", str(document_path)]) == 0
        out = capsys.readouterr().out
        assert "nodes=6 edges=6 myths=1 skipped=3" in out
        assert "[INFO] nodes=7 edges=7" in out

    def test_analyze_and_export(self, document_path, tmp_path, capsys):
        output = tmp_path / "out.json"
        code = main(GLOBAL_ARGS + ["analyze", str(document_path), "--run", "balance", "centrality",
                                   "--output", str(output)])
        assert code == 0
        out = capsys.readouterr().out
        assert "[PASS] balance" in out
        assert "[PASS] centrality" in out
        assert "frustration index" in out

        exported = json.loads(output.read_text(encoding="utf-8"))
        assert exported["format"] == CANONICAL_FORMAT
        assert "frustration_index" in exported["attributes"]

    def test_analyze_year_window(self, document_path, capsys):
        assert main(GLOBAL_ARGS + ["analyze", str(document_path), "--run", "communities", "--year", "1860"]) == 0
        assert "Year 1860: 1 nodes" in capsys.readouterr().out

    def test_search_without_model(self, document_path, capsys):
        assert main(GLOBAL_ARGS + ["search", str(document_path), "Roman Dmowski", "--top-k", "3", "--no-model"]) == 0
        out = capsys.readouterr().out
        hits = json.loads(out[out.index("[\n"):])
        assert len(hits) == 3
        assert set(hits[0]) == {"key", "score", "label"}

    def test_missing_document(self, tmp_path, capsys):
        assert main(GLOBAL_ARGS + ["inspect", str(tmp_path / "absent.json")]) == 1
        assert "MALFORMED_DOCUMENT" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert main(GLOBAL_ARGS) == 2


class TestStructuredLogFormatter:
    def test_fields_are_merged(self):
        record = logging.LogRecord("signet.test", logging.WARNING, __file__, 1, "node_skipped", None, None)
        record.structured_data = {"index": 3, "code": "MISSING_IDENTITY"}
        data = json.loads(StructuredLogFormatter().format(record))
        assert data["message"] == "node_skipped"
        assert data["level"] == "WARNING"
        assert data["index"] == 3

    def test_errors_carry_source(self):
        record = logging.LogRecord("signet.test", logging.ERROR, __file__, 42, "algorithm_failed", None, None)
        data = json.loads(StructuredLogFormatter().format(record))
        assert data["source"]["line"] == 42

    def test_reconfiguring_replaces_handler(self):
        configure_logging("DEBUG", json_output=True)
        configure_logging("ERROR", json_output=False)
        package_logger = logging.getLogger("signet")
        assert package_logger.level == logging.ERROR
        assert len(package_logger.handlers) == 1
        assert not isinstance(package_logger.handlers[0].formatter, StructuredLogFormatter)
