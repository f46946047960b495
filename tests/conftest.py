"""
Shared fixtures: a tiny fake DOM that answers the engine's page scripts.

FakeField plays an <input>/<select>/<textarea>, FakeSection a container that
can grow new entry blocks when its Add button is clicked, FakePage the page.
"""

import sys
from pathlib import Path
from typing import Callable, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from browser.config import CLICKABLE_SELECTOR, FIELD_SELECTOR, FILE_INPUT_SELECTOR, HEADING_SELECTOR
from browser.engine import FORM_CHANGE_SCRIPT
from browser.job_text import BLOCK_TEXTS_SCRIPT, BODY_TEXT_SCRIPT
from browser.sections import CONTROL_TEXT_SCRIPT, LOCATE_CONTAINER_SCRIPT, NEXT_SIBLING_SCRIPT
from browser.signals import COLLECT_SCRIPT
from browser.value_writer import RECONCILE_SCRIPT, SELECT_SCRIPT, WRITE_TEXT_SCRIPT


class FakeHandle:
    def __init__(self, element):
        self.element = element

    def as_element(self):
        return self.element


class FakeField:
    """A form control. reject=N makes the first N writes not stick."""

    def __init__(self, label="", name="", id="", type="text", tag="input", placeholder="",
                 options=None, value="", max_length=None, rows=0, height=20.0, visible=True,
                 disabled=False, read_only=False, section_hint="", in_section=False,
                 aria_label="", class_name="", reject=0):
        self.label = label
        self.name = name
        self.id = id
        self.type = "select" if tag == "select" else ("textarea" if tag == "textarea" else type)
        self.tag = tag
        self.placeholder = placeholder
        self.options = options or []  # list of (value, text)
        self.value = value
        self.max_length = max_length
        self.rows = rows
        self.height = height
        self.visible = visible
        self.disabled = disabled
        self.read_only = read_only
        self.section_hint = section_hint
        self.in_section = in_section
        self.aria_label = aria_label
        self.class_name = class_name
        self.reject = reject
        self.writes: List[str] = []
        self.reconciled = 0
        self.selected_index: Optional[int] = None
        self.files = None

    def raw(self):
        return {
            "tag": self.tag,
            "type": self.type,
            "label": self.label,
            "name": self.name,
            "id": self.id,
            "placeholder": self.placeholder,
            "ariaLabel": self.aria_label,
            "dataAutomationId": "",
            "dataFieldName": "",
            "className": self.class_name,
            "sectionHint": self.section_hint,
            "inSectionContainer": self.in_section,
            "options": [{"value": v, "text": t, "index": i} for i, (v, t) in enumerate(self.options)],
            "maxLength": self.max_length,
            "required": False,
            "value": self.value,
            "rows": self.rows,
            "height": self.height,
            "visible": self.visible,
            "disabled": self.disabled,
            "readOnly": self.read_only,
            "ariaHidden": False,
        }

    def evaluate(self, script, arg=None):
        if script == COLLECT_SCRIPT:
            return self.raw()
        if script == WRITE_TEXT_SCRIPT:
            self.writes.append(arg)
            if self.reject > 0:
                self.reject -= 1
                self.value = ""
            else:
                self.value = arg
            return self.value
        if script == SELECT_SCRIPT:
            self.selected_index = arg
            self.value = self.options[arg][0]
            return arg
        if script == RECONCILE_SCRIPT:
            self.reconciled += 1
            return None
        raise AssertionError(f"Unexpected script on field: {script[:40]}")

    def set_input_files(self, files):
        self.files = files


class FakeButton:
    def __init__(self, text: str, on_click: Optional[Callable[[], None]] = None):
        self.text = text
        self.on_click = on_click
        self.clicks = 0

    def evaluate(self, script, arg=None):
        if script == CONTROL_TEXT_SCRIPT:
            return self.text
        raise AssertionError(f"Unexpected script on button: {script[:40]}")

    def click(self):
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeSection:
    """Container of entry blocks. block_factory(i) returns the fields of block i."""

    def __init__(self, entity: str, block_factory: Callable[[int], List[FakeField]],
                 initial_blocks: int = 0, add_text: Optional[str] = None,
                 add_in_sibling: bool = False, renders: bool = True):
        self.entity = entity
        self.block_factory = block_factory
        self.fields: List[FakeField] = []
        self.blocks = 0
        self.renders = renders
        self.buttons: List[FakeButton] = []
        self.next_sibling: Optional["FakeSection"] = None
        self.click_log: List[int] = []
        for _ in range(initial_blocks):
            self.add_block()
        if add_text:
            button = FakeButton(add_text, self.on_add)
            if add_in_sibling:
                self.next_sibling = FakeSection(entity + "-footer", lambda i: [])
                self.next_sibling.buttons.append(button)
            else:
                self.buttons.append(button)

    def add_block(self):
        self.fields.extend(self.block_factory(self.blocks))
        self.blocks += 1

    def on_add(self):
        # Remember how many filled fields existed when Add was pressed
        self.click_log.append(sum(1 for f in self.fields if f.value))
        if self.renders:
            self.add_block()

    @property
    def add_button(self) -> Optional[FakeButton]:
        if self.buttons:
            return self.buttons[0]
        if self.next_sibling and self.next_sibling.buttons:
            return self.next_sibling.buttons[0]
        return None

    def query_selector_all(self, selector):
        if selector == FIELD_SELECTOR:
            return list(self.fields)
        if selector == CLICKABLE_SELECTOR:
            return list(self.buttons)
        return []

    def evaluate_handle(self, script, arg=None):
        if script == NEXT_SIBLING_SCRIPT:
            return FakeHandle(self.next_sibling)
        raise AssertionError(f"Unexpected handle script: {script[:40]}")


class FakeHeading:
    def __init__(self, text: str, container):
        self.text = text
        self.container = container

    def inner_text(self):
        return self.text

    def evaluate_handle(self, script, arg=None):
        if script == LOCATE_CONTAINER_SCRIPT:
            return FakeHandle(self.container)
        raise AssertionError(f"Unexpected handle script: {script[:40]}")


class FakeTextElement:
    def __init__(self, text: str):
        self.text = text

    def inner_text(self):
        return self.text


class FakePage:
    def __init__(self, fields=None, sections=None, headings=None, file_inputs=None,
                 url="https://jobs.example.com/apply", texts=None, blocks=None, body=""):
        self.fields: List[FakeField] = list(fields or [])
        self.sections: List[FakeSection] = list(sections or [])
        self.headings: List[FakeHeading] = list(headings or [])
        self.file_inputs: List[FakeField] = list(file_inputs or [])
        self.url = url
        self.texts = texts or {}      # selector -> inner text
        self.blocks = blocks or []
        self.body = body
        self.form_changes = 0

    def all_fields(self) -> List[FakeField]:
        fields = list(self.fields)
        for section in self.sections:
            fields.extend(section.fields)
        return fields

    def query_selector_all(self, selector):
        if selector == FIELD_SELECTOR:
            return self.all_fields()
        if selector == HEADING_SELECTOR:
            return list(self.headings)
        if selector == FILE_INPUT_SELECTOR:
            return list(self.file_inputs)
        return []

    def query_selector(self, selector):
        if selector in self.texts:
            return FakeTextElement(self.texts[selector])
        return None

    def evaluate(self, script, arg=None):
        if script == FORM_CHANGE_SCRIPT:
            self.form_changes += 1
            return None
        if script == BLOCK_TEXTS_SCRIPT:
            return list(self.blocks)
        if script == BODY_TEXT_SCRIPT:
            return self.body
        raise AssertionError(f"Unexpected page script: {script[:40]}")


def work_block(i: int) -> List[FakeField]:
    hint = "work-experience entry"
    return [
        FakeField(label="Company", id=f"company_{i}", name=f"work[{i}][company]", section_hint=hint),
        FakeField(label="Job Title", id=f"title_{i}", name=f"work[{i}][title]", section_hint=hint),
        FakeField(label="Start Date", id=f"start_{i}", type="month", section_hint=hint),
        FakeField(label="End Date", id=f"end_{i}", type="month", section_hint=hint),
        FakeField(label="Description", id=f"description_{i}", tag="textarea", section_hint=hint),
    ]


def education_block(i: int) -> List[FakeField]:
    hint = "education entry"
    return [
        FakeField(label="School", id=f"school_{i}", section_hint=hint),
        FakeField(label="Degree", id=f"degree_{i}", tag="select", section_hint=hint,
                  options=[("", "Select..."), ("bs", "Bachelor's Degree"), ("ms", "Master's Degree")]),
        FakeField(label="Field of Study", id=f"major_{i}", section_hint=hint),
        FakeField(label="Graduation Year", id=f"grad_{i}", section_hint=hint),
    ]


# ============ Fixtures ============

@pytest.fixture
def no_sleep():
    return lambda seconds: None


@pytest.fixture
def ada_profile():
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@x.com",
        "phone": "07700 900123",
        "city": "London",
        "country": "United Kingdom",
        "workExperience": [
            {"company": "Analytical Engines", "title": "Engineer", "startDate": "01/2020",
             "endDate": "06/2023", "description": "Wrote the first program"},
            {"company": "Difference Ltd", "title": "Analyst", "startDate": "2018-03",
             "endDate": "12/2019", "description": "Tabulated polynomials"},
        ],
        "education": [
            {"institution": "University of London", "degree": "Bachelor's Degree",
             "field": "Mathematics", "graduationDate": "2017"},
        ],
        "projects": [],
    }
