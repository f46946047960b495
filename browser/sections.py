"""
Repeating-Section Engine - fills work history, education and projects.

These sub-forms start with zero or one entry block and grow when an "Add"
control is clicked, so the number of fields is unknown until runtime. Each
entity type runs the same state machine:

    LOCATE_SECTION -> (per entry) DETERMINE_NEED_ADD -> [CLICK_ADD -> AWAIT_NEW_FIELDS]
                   -> SCORE_AND_FILL -> NEXT_ENTRY
    terminal: DONE | ABORTED

Inside an entry, every data attribute (company, title, dates, ...) is scored
against the section's empty fields and goes to the best positive match. A
field, once chosen, leaves the pool so two attributes never share a control.
"""

import logging
import re
import time
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from playwright.sync_api import ElementHandle, Page, Error as PlaywrightError

from .config import (
    ADD_CLICK_DELAY, CLICKABLE_SELECTOR, HEADING_SELECTOR, NEW_FIELDS_TIMEOUT, POLL_INTERVAL,
)
from .profile import Education, Profile, Project, WorkExperience
from .signals import FieldContext, eligible_fields, tokenize
from .value_writer import ValueWriter
from utils.retry import wait_until

logger = logging.getLogger(__name__)


class SectionState(Enum):
    LOCATE_SECTION = "locate_section"
    DETERMINE_NEED_ADD = "determine_need_add"
    CLICK_ADD = "click_add"
    AWAIT_NEW_FIELDS = "await_new_fields"
    SCORE_AND_FILL = "score_and_fill"
    NEXT_ENTRY = "next_entry"
    DONE = "done"
    ABORTED = "aborted"


# ═══════════════════════════════════════════════════════════════════════════
# SCORING
# ═══════════════════════════════════════════════════════════════════════════

LABEL_WEIGHT = 100
IDENT_WEIGHT = 50
PLACEHOLDER_WEIGHT = 25
ANTI_PENALTY = 40

Bonus = Tuple[Callable[[FieldContext, str], bool], int]


@lru_cache(maxsize=512)
def _word_re(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword) + r"\b")


def has_word(text: str, keyword: str) -> bool:
    """Whole-word (or whole-phrase) match, so 'to' doesn't hit 'tooltip'."""
    return _word_re(keyword).search(text) is not None


def _type_is(*types: str) -> Callable[[FieldContext, str], bool]:
    return lambda ctx, text: ctx.type in types or ctx.tag in types


def _mentions(*words: str) -> Callable[[FieldContext, str], bool]:
    return lambda ctx, text: any(has_word(text, w) for w in words)


START_WORDS = ("start", "from", "begin")
END_WORDS = ("end", "to", "until")

START_DATE_BONUSES: List[Bonus] = [
    (_type_is("date", "month"), 30),
    (_mentions(*START_WORDS), 20),
    (_mentions(*END_WORDS), -100),
]
END_DATE_BONUSES: List[Bonus] = [
    (_type_is("date", "month"), 30),
    (_mentions(*END_WORDS), 20),
    (_mentions(*START_WORDS), -100),
]


@dataclass
class AttributeSpec:
    """How to find the control for one attribute of an entry."""
    key: str
    keywords: Sequence[str]
    anti_keywords: Sequence[str] = ()
    bonuses: Sequence[Bonus] = ()


@dataclass
class SectionSpec:
    entity: str
    headings: Sequence[str]          # heading text synonyms, most specific first
    entity_words: Sequence[str]      # words an "Add ..." control mentions
    attributes: Sequence[AttributeSpec]
    defaults: Dict[str, str] = dataclass_field(default_factory=dict)

    def values_for(self, entry) -> Dict[str, str]:
        values = {}
        for attr in self.attributes:
            value = getattr(entry, attr.key, "") or self.defaults.get(attr.key, "")
            values[attr.key] = str(value).strip()
        return values


def score_field(attr: AttributeSpec, ctx: FieldContext) -> int:
    """
    Label keyword +100, else id/name +50, else placeholder +25 (per keyword);
    -40 per anti-keyword anywhere; then control-type and direction bonuses.
    """
    label = tokenize(ctx.label)
    ident = tokenize(f"{ctx.id} {ctx.name}")
    placeholder = tokenize(ctx.placeholder)
    full = f"{label} {ident} {placeholder}"

    score = 0
    for keyword in attr.keywords:
        if has_word(label, keyword):
            score += LABEL_WEIGHT
        elif has_word(ident, keyword):
            score += IDENT_WEIGHT
        elif has_word(placeholder, keyword):
            score += PLACEHOLDER_WEIGHT

    for keyword in attr.anti_keywords:
        if has_word(full, keyword):
            score -= ANTI_PENALTY

    for predicate, points in attr.bonuses:
        if predicate(ctx, full):
            score += points

    return score


def pick_best(attr: AttributeSpec, pool: List[Tuple[ElementHandle, FieldContext]],
              prefer_last: bool = False) -> Optional[Tuple[ElementHandle, FieldContext]]:
    """
    Highest-scoring field, or None if nothing scores above zero.
    prefer_last breaks ties toward later fields (the newest entry block).
    """
    best = None
    best_score = 0
    for item in pool:
        score = score_field(attr, item[1])
        if score > best_score or (prefer_last and best is not None and score == best_score):
            best, best_score = item, score
    return best


# ═══════════════════════════════════════════════════════════════════════════
# SECTION TABLES
# ═══════════════════════════════════════════════════════════════════════════

WORK_SECTION = SectionSpec(
    entity="work",
    headings=["work experience", "employment history", "professional experience",
              "work history", "career history", "employment", "experience"],
    entity_words=["experience", "employment", "job", "position"],
    attributes=[
        AttributeSpec("company", ["company", "employer", "organization", "organisation", "business", "firm"],
                      ["title", "position", "role", "date", "year", "description", "location"]),
        AttributeSpec("title", ["title", "position", "role", "job title", "job", "designation"],
                      ["company", "employer", "date", "year", "description", "location"]),
        AttributeSpec("start_date", ["start", "from", "begin", "starting", "started", "join", "joined"],
                      ["end", "to", "until", "finish", "leaving", "left", "completion", "complete",
                       "present", "current"],
                      START_DATE_BONUSES),
        AttributeSpec("end_date", ["end", "to", "until", "finish", "finished", "ending", "ended",
                                   "leaving", "left", "present", "current"],
                      ["start", "from", "begin", "starting", "started", "join", "joined"],
                      END_DATE_BONUSES),
        AttributeSpec("location", ["location", "city", "place", "where", "based", "country", "state",
                                   "region", "locale", "area"],
                      ["company", "title", "description", "responsibility", "duty", "skill"]),
        AttributeSpec("description", ["description", "responsibilities", "duties", "summary", "role",
                                      "what you did", "details"],
                      ["company", "title", "location", "date"],
                      [(_type_is("textarea"), 30)]),
    ],
    defaults={"end_date": "Present"},
)

EDUCATION_SECTION = SectionSpec(
    entity="education",
    headings=["education", "academic background", "educational background", "my education",
              "academic", "schools", "degrees", "qualifications"],
    entity_words=["education", "school", "degree"],
    attributes=[
        AttributeSpec("institution", ["school", "university", "college", "institution", "academy",
                                      "institute", "educational"],
                      ["high school name", "grade", "degree", "field", "major", "date", "gpa"]),
        AttributeSpec("degree", ["degree", "level", "qualification", "education level", "highest education",
                                 "diploma", "credential", "program", "course"],
                      ["temperature", "angle", "field", "school", "university", "major", "date"]),
        AttributeSpec("field", ["major", "field", "study", "concentration", "specialization", "subject",
                                "discipline", "area of study", "program", "area"],
                      ["work", "job", "company", "degree", "school", "university", "date"]),
        AttributeSpec("graduation_date", ["graduation", "grad date", "completion", "end date", "finish",
                                          "awarded", "conferred", "year", "graduated", "end", "date"],
                      ["start", "begin", "enrollment"],
                      [(_type_is("date", "month"), 20), (_mentions("year"), 20)]),
        AttributeSpec("gpa", ["gpa", "grade", "marks", "score", "cgpa", "percentage", "grade point", "average"],
                      ["school name", "university", "institution"],
                      [(_type_is("number"), 20)]),
    ],
)

PROJECTS_SECTION = SectionSpec(
    entity="projects",
    headings=["projects", "personal projects", "side projects", "coding projects", "my projects",
              "portfolio", "work samples"],
    entity_words=["project", "portfolio"],
    attributes=[
        AttributeSpec("name", ["name", "title", "project name", "project title"],
                      ["description", "tech", "url", "link", "date"]),
        AttributeSpec("description", ["description", "details", "summary", "about", "what"],
                      ["name", "title", "tech", "url", "link"],
                      [(_type_is("textarea"), 30)]),
        AttributeSpec("technologies", ["tech", "technology", "technologies", "stack", "tools", "skills",
                                       "language"],
                      ["name", "title", "description", "url"]),
        AttributeSpec("url", ["url", "link", "website", "demo", "github", "repo", "repository"],
                      ["name", "title", "description"],
                      [(_type_is("url"), 20)]),
    ],
)

SECTION_SPECS = [WORK_SECTION, EDUCATION_SECTION, PROJECTS_SECTION]


# ═══════════════════════════════════════════════════════════════════════════
# PAGE SCRIPTS
# ═══════════════════════════════════════════════════════════════════════════

LOCATE_CONTAINER_SCRIPT = r"""
(heading, words) => {
    let node = heading;
    for (let i = 0; i < 5 && node.parentElement; i++) {
        node = node.parentElement;
        const cls = (typeof node.className === 'string' ? node.className : '').toLowerCase();
        const auto = (node.getAttribute('data-automation-id') || '').toLowerCase();
        if (node.tagName === 'SECTION' || cls.includes('section') ||
            words.some(w => cls.includes(w) || auto.includes(w))) {
            return node;
        }
    }
    return heading.parentElement;
}
"""

CONTROL_TEXT_SCRIPT = r"""
(el) => [el.textContent || '', el.getAttribute('aria-label') || '', el.getAttribute('title') || '']
    .join(' ').replace(/\s+/g, ' ').trim()
"""

NEXT_SIBLING_SCRIPT = "(el) => el.nextElementSibling"


@dataclass
class SectionResult:
    entity: str
    state: SectionState = SectionState.LOCATE_SECTION
    entries_total: int = 0
    entries_filled: int = 0
    add_clicks: int = 0
    fields: List[str] = dataclass_field(default_factory=list)
    trace: List[SectionState] = dataclass_field(default_factory=list)
    error: Optional[str] = None

    @property
    def filled_count(self) -> int:
        return len(self.fields)


def is_add_control(text: str, entity_words: Sequence[str]) -> bool:
    text = text.lower().strip()
    bare = text.strip(" +")
    if not has_word(text, "add"):
        return False
    if bare == "add":
        return True
    return "another" in text or any(w in text for w in entity_words)


class RepeatingSectionFiller:
    """Runs the section state machine for one entity type at a time."""

    def __init__(
        self,
        page: Page,
        writer: Optional[ValueWriter] = None,
        sleep: Callable[[float], None] = time.sleep,
        new_fields_timeout: float = NEW_FIELDS_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
        add_click_delay: float = ADD_CLICK_DELAY,
    ):
        self.page = page
        self.writer = writer or ValueWriter(sleep=sleep)
        self.sleep = sleep
        self.new_fields_timeout = new_fields_timeout
        self.poll_interval = poll_interval
        self.add_click_delay = add_click_delay

    def fill_profile(self, profile: Profile) -> List[SectionResult]:
        """Work, then education, then projects. Strictly sequential."""
        entries = {
            "work": profile.work_experience,
            "education": profile.education,
            "projects": profile.projects,
        }
        return [self.fill(spec, entries[spec.entity]) for spec in SECTION_SPECS]

    def fill(self, spec: SectionSpec, entries: Sequence) -> SectionResult:
        result = SectionResult(entity=spec.entity, entries_total=len(entries))
        state = SectionState.LOCATE_SECTION
        section: Optional[ElementHandle] = None
        index = 0
        count_before = 0

        while state not in (SectionState.DONE, SectionState.ABORTED):
            result.trace.append(state)

            if state is SectionState.LOCATE_SECTION:
                if not entries:
                    state = SectionState.DONE
                    continue
                section = self.locate_section(spec)
                if section is None:
                    logger.info(f"No {spec.entity} section on page")
                    result.error = "section not found"
                    state = SectionState.ABORTED
                else:
                    state = SectionState.DETERMINE_NEED_ADD

            elif state is SectionState.DETERMINE_NEED_ADD:
                count_before = len(self.section_fields(section))
                needs_add = index > 0 or count_before == 0
                state = SectionState.CLICK_ADD if needs_add else SectionState.SCORE_AND_FILL

            elif state is SectionState.CLICK_ADD:
                control = self.find_add_control(section, spec)
                if control is None:
                    logger.warning(f"No Add control for {spec.entity}; stopping after {index} entries")
                    result.error = "add control not found"
                    state = SectionState.ABORTED
                    continue
                try:
                    control.click()
                except PlaywrightError as e:
                    logger.warning(f"Add click failed for {spec.entity}: {e}")
                    result.error = "add click failed"
                    state = SectionState.ABORTED
                    continue
                result.add_clicks += 1
                self.sleep(self.add_click_delay)
                state = SectionState.AWAIT_NEW_FIELDS

            elif state is SectionState.AWAIT_NEW_FIELDS:
                appeared = wait_until(
                    lambda: len(self.section_fields(section)) > count_before,
                    timeout=self.new_fields_timeout,
                    interval=self.poll_interval,
                    sleep=self.sleep,
                )
                if not appeared:
                    logger.warning(f"No new {spec.entity} fields after Add; filling best-effort")
                state = SectionState.SCORE_AND_FILL

            elif state is SectionState.SCORE_AND_FILL:
                filled = self.fill_entry(section, spec, entries[index], prefer_last=index > 0)
                if filled:
                    result.entries_filled += 1
                result.fields.extend(f"{spec.entity}[{index}].{key}" for key in filled)
                state = SectionState.NEXT_ENTRY

            elif state is SectionState.NEXT_ENTRY:
                index += 1
                state = SectionState.DETERMINE_NEED_ADD if index < len(entries) else SectionState.DONE

        result.trace.append(state)
        result.state = state
        logger.info(f"{spec.entity}: {result.entries_filled}/{result.entries_total} entries, "
                    f"{result.filled_count} fields ({state.value})")
        return result

    # --- steps ---

    def locate_section(self, spec: SectionSpec) -> Optional[ElementHandle]:
        try:
            headings = self.page.query_selector_all(HEADING_SELECTOR)
            texts = [(h, (h.inner_text() or "").strip().lower()) for h in headings]
            for synonym in spec.headings:
                for heading, text in texts:
                    if text and synonym in text:
                        handle = heading.evaluate_handle(LOCATE_CONTAINER_SCRIPT, list(spec.entity_words) + [spec.entity])
                        container = handle.as_element()
                        if container is not None:
                            logger.debug(f"{spec.entity} section found under heading '{text[:40]}'")
                            return container
        except PlaywrightError as e:
            logger.warning(f"Section lookup failed for {spec.entity}: {e}")
        return None

    def find_add_control(self, section: ElementHandle, spec: SectionSpec) -> Optional[ElementHandle]:
        """Look inside the section first, then in its next sibling."""
        roots = [section]
        try:
            sibling = section.evaluate_handle(NEXT_SIBLING_SCRIPT).as_element()
            if sibling is not None:
                roots.append(sibling)
        except PlaywrightError:
            pass

        for root in roots:
            try:
                for control in root.query_selector_all(CLICKABLE_SELECTOR):
                    if is_add_control(control.evaluate(CONTROL_TEXT_SCRIPT) or "", spec.entity_words):
                        return control
            except PlaywrightError as e:
                logger.debug(f"Add control scan failed: {e}")
        return None

    def section_fields(self, section: ElementHandle) -> List[Tuple[ElementHandle, FieldContext]]:
        """Eligible, writable, non-skill fields in the section. Always re-queried."""
        fields = []
        for element, ctx in eligible_fields(section):
            if ctx.read_only or ctx.type in ("checkbox", "radio", "file"):
                continue
            if "skill" in f"{ctx.label} {ctx.id} {ctx.name} {ctx.placeholder} {ctx.aria_label}".lower():
                continue
            fields.append((element, ctx))
        return fields

    def fill_entry(self, section: ElementHandle, spec: SectionSpec, entry,
                   prefer_last: bool = False) -> List[str]:
        pool = [item for item in self.section_fields(section) if not item[1].value.strip()]
        values = spec.values_for(entry)
        filled = []

        for attr in spec.attributes:
            value = values.get(attr.key)
            if not value:
                continue
            best = pick_best(attr, pool, prefer_last=prefer_last)
            if best is None:
                logger.debug(f"No field for {spec.entity}.{attr.key}")
                continue
            pool.remove(best)
            element, ctx = best
            if self.writer.write(element, ctx, [value] if ctx.is_select else value):
                filled.append(attr.key)

        return filled
