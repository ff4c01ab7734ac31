"""
Tests for the log formatters.
"""

import io
import json
import logging

from pulp_slimmer.logging_config import HumanFormatter, JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord("pulp_slimmer.engine.reconciler", logging.WARNING, __file__, 1,
                               "repo '%s' already exists", ("pulp-base-os",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_includes_context_fields(self):
        entry = json.loads(JSONFormatter().format(_record(repo="pulp-base-os", stage="repo-ensured")))

        assert entry["level"] == "WARNING"
        assert entry["message"] == "repo 'pulp-base-os' already exists"
        assert entry["repo"] == "pulp-base-os"
        assert entry["stage"] == "repo-ensured"
        assert "task_href" not in entry


class TestHumanFormatter:
    def test_prefixes_repo(self):
        line = HumanFormatter().format(_record(repo="pulp-base-os"))

        assert "[reconciler     ]" in line
        assert line.endswith("(pulp-base-os) repo 'pulp-base-os' already exists")


class TestSetupLogging:
    def test_json_to_given_stream(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        stream = io.StringIO()
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="warning", format_type="JSON", stream=stream)
            logging.getLogger("pulp_slimmer.engine.slim").info("hidden")
            logging.getLogger("pulp_slimmer.engine.slim").warning("shown", extra={"repo": "pulp-base-os"})
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["repo"] == "pulp-base-os"
        assert logging.getLogger("httpx").level == logging.WARNING
