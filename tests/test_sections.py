"""
Tests for the repeating-section engine.

Runs the state machine against the fake DOM from conftest: sections that
grow a new entry block every time their Add button is clicked.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from browser.profile import Education, WorkExperience
from browser.sections import (
    EDUCATION_SECTION, PROJECTS_SECTION, WORK_SECTION,
    AttributeSpec, RepeatingSectionFiller, SectionState,
    has_word, is_add_control, pick_best, score_field,
)
from browser.signals import FieldContext
from browser.value_writer import ValueWriter
from conftest import FakeField, FakeHeading, FakePage, FakeSection, education_block, work_block


def make_filler(page, no_sleep):
    return RepeatingSectionFiller(page, ValueWriter(sleep=no_sleep), sleep=no_sleep)


def work_entries(profile):
    return [WorkExperience.from_dict(e) for e in profile["workExperience"]]


def work_page(section, heading="Work Experience"):
    return FakePage(sections=[section], headings=[FakeHeading(heading, section)])


# ============ Scoring Tests ============

class TestScoring:
    """Tests for per-attribute field scoring."""

    def test_label_beats_id_beats_placeholder(self):
        """Should weight label, then id/name, then placeholder."""
        attr = AttributeSpec("company", ["company"])

        assert score_field(attr, FieldContext(label="Company")) == 100
        assert score_field(attr, FieldContext(id="company")) == 50
        assert score_field(attr, FieldContext(placeholder="Company")) == 25

    def test_keyword_counted_once(self):
        """Should only count the first matching source per keyword."""
        attr = AttributeSpec("company", ["company"])
        ctx = FieldContext(label="Company", id="company", placeholder="Company")

        assert score_field(attr, ctx) == 100

    def test_anti_keyword_penalty(self):
        """Should subtract 40 per anti-keyword."""
        attr = AttributeSpec("company", ["company"], ["title", "date"])
        ctx = FieldContext(label="Company title date")

        assert score_field(attr, ctx) == 100 - 80

    def test_start_date_direction(self):
        """Should push start dates away from end-date fields."""
        start = WORK_SECTION.attributes[2]
        end_field = FieldContext(label="End Date", type="month")
        start_field = FieldContext(label="Start Date", type="month")

        assert score_field(start, start_field) > 0
        assert score_field(start, end_field) <= 0

    def test_whole_words_only(self):
        """Should not match 'to' inside 'tooltip'."""
        assert has_word("to date", "to")
        assert not has_word("tooltip", "to")

    def test_pick_best_requires_positive(self):
        """Should return None when nothing scores above zero."""
        attr = AttributeSpec("gpa", ["gpa"])
        pool = [(object(), FieldContext(label="Company"))]

        assert pick_best(attr, pool) is None

    def test_pick_best_tie_prefers_last_when_asked(self):
        """Should break ties toward the newest block when prefer_last is set."""
        attr = AttributeSpec("company", ["company"])
        first, second = object(), object()
        pool = [(first, FieldContext(label="Company")), (second, FieldContext(label="Company"))]

        assert pick_best(attr, pool)[0] is first
        assert pick_best(attr, pool, prefer_last=True)[0] is second


# ============ Add Control Tests ============

class TestAddControl:
    """Tests for recognising Add buttons."""

    def test_entity_add(self):
        assert is_add_control("Add Experience", WORK_SECTION.entity_words)

    def test_bare_add(self):
        assert is_add_control("+ Add", WORK_SECTION.entity_words)

    def test_add_another(self):
        assert is_add_control("Add another", EDUCATION_SECTION.entity_words)

    def test_other_entity_rejected(self):
        """Should not use an education Add button for work history."""
        assert not is_add_control("Add Education", WORK_SECTION.entity_words)

    def test_address_is_not_add(self):
        assert not is_add_control("Address", WORK_SECTION.entity_words)


# ============ State Machine Tests ============

class TestRepeatingSectionFiller:
    """Tests for the section state machine."""

    def test_two_entries_from_zero_blocks(self, ada_profile, no_sleep):
        """Should click Add twice and fill each block with its own entry."""
        section = FakeSection("work", work_block, add_text="Add Experience")
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert result.state is SectionState.DONE
        assert section.add_button.clicks == 2
        assert section.blocks == 2
        values = [f.value for f in section.fields]
        assert values[:5] == ["Analytical Engines", "Engineer", "2020-01", "2023-06", "Wrote the first program"]
        assert values[5:] == ["Difference Ltd", "Analyst", "2018-03", "2019-12", "Tabulated polynomials"]
        assert result.entries_filled == 2
        assert result.filled_count == 10
        assert result.fields[0] == "work[0].company"

    def test_entries_created_in_order(self, ada_profile, no_sleep):
        """Should only press Add for entry 2 after entry 1 is filled."""
        section = FakeSection("work", work_block, add_text="Add Experience")
        filler = make_filler(work_page(section), no_sleep)

        filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert section.click_log == [0, 5]

    def test_no_double_assignment(self, ada_profile, no_sleep):
        """Should write each control at most once."""
        section = FakeSection("work", work_block, add_text="Add Experience")
        filler = make_filler(work_page(section), no_sleep)

        filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert all(len(f.writes) <= 1 for f in section.fields)

    def test_existing_block_used_first(self, ada_profile, no_sleep):
        """Should fill the pre-rendered block and click Add only for entry 2."""
        section = FakeSection("work", work_block, initial_blocks=1, add_text="Add another")
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert section.add_button.clicks == 1
        assert result.entries_filled == 2

    def test_add_control_in_next_sibling(self, ada_profile, no_sleep):
        """Should find the Add button just after the section."""
        section = FakeSection("work", work_block, add_text="Add Experience", add_in_sibling=True)
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert section.add_button.clicks == 2
        assert result.entries_filled == 2

    def test_section_not_found(self, ada_profile, no_sleep):
        """Should abort with zero fills when no heading matches."""
        page = FakePage(headings=[FakeHeading("Personal Details", None)])
        filler = make_filler(page, no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert result.state is SectionState.ABORTED
        assert result.filled_count == 0
        assert result.error == "section not found"

    def test_add_control_missing_keeps_filled_entries(self, ada_profile, no_sleep):
        """Should stop after entry 1 when there is no Add button."""
        section = FakeSection("work", work_block, initial_blocks=1)
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert result.state is SectionState.ABORTED
        assert result.entries_filled == 1
        assert section.fields[0].value == "Analytical Engines"
        assert result.error == "add control not found"

    def test_add_control_missing_on_empty_section(self, ada_profile, no_sleep):
        """Should fill nothing when the section is empty and has no Add button."""
        section = FakeSection("work", work_block)
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert result.state is SectionState.ABORTED
        assert result.filled_count == 0

    def test_new_fields_never_render(self, ada_profile, no_sleep):
        """Should proceed best-effort when Add renders nothing."""
        section = FakeSection("work", work_block, initial_blocks=1, add_text="Add Experience", renders=False)
        filler = make_filler(work_page(section), no_sleep)

        result = filler.fill(WORK_SECTION, work_entries(ada_profile))

        assert result.state is SectionState.DONE
        assert SectionState.AWAIT_NEW_FIELDS in result.trace
        assert result.entries_filled == 1
        assert all(len(f.writes) == 1 for f in section.fields)

    def test_no_entries_is_done(self, no_sleep):
        """Should finish immediately with nothing to fill."""
        filler = make_filler(FakePage(), no_sleep)

        result = filler.fill(PROJECTS_SECTION, [])

        assert result.state is SectionState.DONE
        assert result.trace == [SectionState.LOCATE_SECTION, SectionState.DONE]

    def test_education_select_and_year(self, ada_profile, no_sleep):
        """Should pick the degree option and narrow the date to a year."""
        section = FakeSection("education", education_block, initial_blocks=1, add_text="Add Education")
        page = FakePage(sections=[section], headings=[FakeHeading("Education", section)])
        filler = make_filler(page, no_sleep)
        entries = [Education.from_dict(e) for e in ada_profile["education"]]

        result = filler.fill(EDUCATION_SECTION, entries)

        school, degree, major, grad = section.fields
        assert school.value == "University of London"
        assert degree.selected_index == 1
        assert major.value == "Mathematics"
        assert grad.value == "2017"
        assert section.add_button.clicks == 0
        assert result.state is SectionState.DONE

    def test_skill_fields_excluded(self, no_sleep):
        """Should leave skill inputs out of the section pool."""
        section = FakeSection("projects", lambda i: [
            FakeField(label="Skills used", section_hint="project"),
            FakeField(label="Project Name", section_hint="project"),
        ], initial_blocks=1)
        filler = make_filler(FakePage(sections=[section]), no_sleep)

        fields = filler.section_fields(section)

        assert [ctx.label for _, ctx in fields] == ["Project Name"]

    def test_skill_hint_in_placeholder_or_aria_label(self, no_sleep):
        section = FakeSection("projects", lambda i: [
            FakeField(label="Tags", placeholder="Key skills, comma separated", section_hint="project"),
            FakeField(label="Stack", aria_label="Skills", section_hint="project"),
            FakeField(label="Project Name", section_hint="project"),
        ], initial_blocks=1)
        filler = make_filler(FakePage(sections=[section]), no_sleep)

        fields = filler.section_fields(section)

        assert [ctx.label for _, ctx in fields] == ["Project Name"]
