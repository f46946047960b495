"""
Tests for job description extraction and the fill-session logger.
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from browser.form_logger import FormLogger
from browser.job_text import MAX_BODY_TEXT, extract_job_text, pick_longest_block
from conftest import FakePage


# ============ Job Text Tests ============

class TestExtractJobText:

    def test_known_selector(self):
        description = "We are hiring an engineer. " * 10
        page = FakePage(texts={"#jobDescriptionText": description})

        assert extract_job_text(page) == description.strip()

    def test_short_selector_text_skipped(self):
        """Should ignore a matching container with too little text."""
        page = FakePage(texts={"main": "Apply now"}, blocks=["a" * 250, "b" * 300, "c" * 20000])

        assert extract_job_text(page) == "b" * 300

    def test_body_fallback_truncated(self):
        page = FakePage(body="d" * 6000)

        text = extract_job_text(page)

        assert len(text) == MAX_BODY_TEXT

    def test_nothing_found(self):
        assert extract_job_text(FakePage(body="Loading...")) == ""

    def test_pick_longest_block_bounds(self):
        assert pick_longest_block(["x" * 200, "", None]) is None
        assert pick_longest_block(["x" * 201, "y" * 500]) == "y" * 500


# ============ Form Logger Tests ============

class TestFormLogger:
    """Tests for per-session JSON fill logs."""

    def test_session_written(self, tmp_path):
        form_logger = FormLogger(tmp_path)
        form_logger.start_session(url="https://jobs.example.com/apply", title="Engineer")
        form_logger.log_field("first_name", "text", "First Name", "first_name", "Ada", "profile", True)
        form_logger.log_field("nm", "text", "Name", None, "", "ai", False)
        form_logger.log_field("country", "select", "Country", "country", "US", "profile", False, "write not verified")
        form_logger.log_section("work", "done", 2, 2, ["work[0].company"])

        path = Path(form_logger.end_session())

        assert path.name.endswith("_jobs.json")
        log = json.loads(path.read_text(encoding="utf-8"))
        assert log["status"] == "completed"
        assert (log["fields_total"], log["fields_filled"], log["fields_skipped"], log["fields_error"]) == (3, 1, 1, 1)
        assert log["sections"][0]["entries_filled"] == 2
        assert log["field_logs"][0]["value_filled"] == "Ada"

    def test_errors_recorded(self, tmp_path):
        form_logger = FormLogger(tmp_path)
        form_logger.start_session(url="")
        form_logger.log_error("No data available")

        path = Path(form_logger.end_session("error"))

        log = json.loads(path.read_text(encoding="utf-8"))
        assert log["errors"] == ["No data available"]
        assert path.name.endswith("_unknown.json")

    def test_end_without_session(self, tmp_path):
        assert FormLogger(tmp_path).end_session() is None

    def test_logging_without_session_ignored(self, tmp_path):
        form_logger = FormLogger(tmp_path)

        form_logger.log_field("x", "text", "X", None, "", "profile", False)
        form_logger.log_error("ignored")

        assert list(tmp_path.iterdir()) == []

    def test_unwritable_dir(self, tmp_path):
        blocker = tmp_path / "logs"
        blocker.write_text("not a directory")
        form_logger = FormLogger(blocker)
        form_logger.start_session(url="https://x.com")

        assert form_logger.end_session() is None

    def test_recent_logs_and_summary(self, tmp_path):
        form_logger = FormLogger(tmp_path)
        for status in ("completed", "error"):
            form_logger.start_session(url="https://jobs.example.com")
            form_logger.log_field("email", "email", "Email", "email", "ada@x.com", "profile", True)
            form_logger.end_session(status)

        logs = form_logger.get_recent_logs(10)
        summary = form_logger.get_log_summary()

        assert len(logs) == 2
        assert logs[0]["status"] == "error"
        assert summary["total_forms"] == 2
        assert summary["completed"] == 1
        assert summary["total_fields_filled"] == 2
