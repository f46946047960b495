"""
Tests for field signal collection and the bounded polling helper.
"""

import sys
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError

sys.path.insert(0, str(Path(__file__).parent.parent))

from browser.signals import FieldContext, collect_context, eligible_fields, is_eligible, tokenize
from utils.retry import wait_until
from conftest import FakeField, FakePage


# ============ Tokenize Tests ============

class TestTokenize:

    def test_camel_case(self):
        assert tokenize("startDate_year") == "start date year"

    def test_brackets_and_dashes(self):
        assert tokenize("work-experience[0].company") == "work experience 0 company"

    def test_empty(self):
        assert tokenize("") == ""
        assert tokenize(None) == ""


# ============ FieldContext Tests ============

class TestFieldContext:
    """Tests for building and reading FieldContext."""

    def test_from_raw(self):
        field = FakeField(label="Degree", id="degree", tag="select",
                          options=[("", "Select"), ("bs", "Bachelor's")], max_length=None)

        ctx = collect_context(field)

        assert ctx.is_select
        assert ctx.type == "select"
        assert [o.text for o in ctx.options] == ["Select", "Bachelor's"]
        assert ctx.options[1].index == 1
        assert ctx.max_length is None

    def test_combined_includes_every_signal(self):
        ctx = FieldContext(name="applicant[firstName]", id="fn", placeholder="e.g. Ada",
                           label="Given", class_name="input-text")

        combined = ctx.combined

        for word in ("applicant", "first", "name", "fn", "ada", "given", "input", "text"):
            assert word in combined.split()

    def test_repeating_section_by_hint(self):
        assert FieldContext(section_hint="work-experience-block").in_repeating_section
        assert FieldContext(section_hint="employment history").in_repeating_section
        assert not FieldContext(section_hint="personal-info").in_repeating_section

    def test_repeating_section_by_container(self):
        assert FieldContext(in_section_container=True).in_repeating_section

    def test_display_name_fallbacks(self):
        assert FieldContext(name="email", id="e1").display_name == "email"
        assert FieldContext(id="e1").display_name == "e1"
        assert FieldContext(label="Email address").display_name == "Email address"
        assert FieldContext(tag="textarea").display_name == "textarea"


# ============ Eligibility Tests ============

class TestEligibility:

    def test_visible_text_field(self):
        assert is_eligible(FieldContext(type="text", visible=True))

    def test_hidden_types(self):
        assert not is_eligible(FieldContext(type="hidden"))
        assert not is_eligible(FieldContext(type="submit"))

    def test_disabled_and_aria_hidden(self):
        assert not is_eligible(FieldContext(disabled=True))
        assert not is_eligible(FieldContext(aria_hidden=True))

    def test_invisible_select_still_eligible(self):
        """Should keep selects that styled wrappers hide."""
        assert is_eligible(FieldContext(tag="select", type="select", visible=False))
        assert not is_eligible(FieldContext(visible=False))

    def test_eligible_fields_filters_page(self):
        page = FakePage(fields=[
            FakeField(label="First Name"),
            FakeField(label="Token", type="hidden"),
            FakeField(label="Locked", disabled=True),
        ])

        fields = eligible_fields(page)

        assert [ctx.label for _, ctx in fields] == ["First Name"]

    def test_detached_element_skipped(self):
        class Detached(FakeField):
            def evaluate(self, script, arg=None):
                raise PlaywrightError("detached")

        assert collect_context(Detached()) is None


# ============ wait_until Tests ============

class TestWaitUntil:
    """Tests for the bounded polling helper."""

    def test_immediate_success(self):
        sleeps = []

        assert wait_until(lambda: True, sleep=sleeps.append)
        assert sleeps == []

    def test_eventual_success(self):
        calls = {"n": 0}

        def predicate():
            calls["n"] += 1
            return calls["n"] >= 3

        assert wait_until(predicate, timeout=2.0, interval=0.2, sleep=lambda s: None)
        assert calls["n"] == 3

    def test_gives_up_after_budget(self):
        """Should stop after timeout / interval attempts."""
        calls = {"n": 0}
        sleeps = []

        def predicate():
            calls["n"] += 1
            return False

        assert not wait_until(predicate, timeout=1.0, interval=0.25, sleep=sleeps.append)
        assert len(sleeps) == 4
        assert calls["n"] == 5

    def test_backoff(self):
        sleeps = []

        wait_until(lambda: False, timeout=0.3, interval=0.1, backoff=2.0, sleep=sleeps.append)

        assert sleeps == [0.1, 0.2, 0.4]
