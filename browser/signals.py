"""
Signal Collector - reads everything a classifier needs to know about one control.

A single JavaScript read per element returns the label, attributes, options
and ancestor hints as a plain dict, which FieldContext.from_raw turns into a
dataclass. Nothing here writes to the page.

Label resolution order:
1. <label for="id">
2. Enclosing <label> (minus the control's own text)
3. aria-label
4. placeholder
5. name / id
"""

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, List, Optional, Tuple

from playwright.sync_api import ElementHandle, Error as PlaywrightError

from .config import FIELD_SELECTOR

logger = logging.getLogger(__name__)


# Ancestor tokens that mark a field as part of a repeating sub-form
REPEATING_SECTION_TOKENS = (
    "experience", "education", "project", "employment",
    "work-history", "work_history",
)


def tokenize(text: str) -> str:
    """'startDate_year' -> 'start date year'. Lowercase, words split on case and punctuation."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text or "")
    text = re.sub(r"[_\[\]\.:]+|(?<=\w)-(?=\w)|\s+", " ", text)
    return text.strip().lower()


# Input types that are never fillable
SKIPPED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}


COLLECT_SCRIPT = r"""
(el) => {
    const attr = (n) => el.getAttribute(n) || '';
    const tag = el.tagName.toLowerCase();

    let label = '';
    if (el.id) {
        const byFor = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
        if (byFor) label = byFor.textContent.trim();
    }
    if (!label) {
        const wrap = el.closest('label');
        if (wrap) {
            label = wrap.textContent.trim();
            if (el.textContent) label = label.replace(el.textContent, '').trim();
        }
    }
    if (!label) label = attr('aria-label') || attr('placeholder') || attr('name') || el.id || '';

    const hint = [];
    let node = el.parentElement;
    for (let i = 0; i < 5 && node; i++, node = node.parentElement) {
        if (typeof node.className === 'string' && node.className) hint.push(node.className);
        if (node.id) hint.push(node.id);
        for (const a of Array.from(node.attributes)) {
            if (a.name.startsWith('data-') && a.value) hint.push(a.value);
        }
    }
    const container = el.closest(
        '[class*="experience"], [class*="education"], [class*="project"], ' +
        '[class*="work-history"], [class*="employment"], ' +
        '[data-automation-id*="experience"], [data-automation-id*="education"], ' +
        '[data-automation-id*="project"], [id*="experience"], [id*="education"], [id*="project"]'
    );

    let type = (attr('type') || '').toLowerCase();
    if (tag === 'select') type = 'select';
    else if (tag === 'textarea') type = 'textarea';
    else if (!type) type = 'text';

    const rect = el.getBoundingClientRect();
    return {
        tag: tag,
        type: type,
        label: label,
        name: attr('name'),
        id: el.id || '',
        placeholder: attr('placeholder'),
        ariaLabel: attr('aria-label'),
        dataAutomationId: attr('data-automation-id'),
        dataFieldName: attr('data-field-name'),
        className: typeof el.className === 'string' ? el.className : '',
        sectionHint: hint.join(' ').toLowerCase(),
        inSectionContainer: !!container,
        options: tag === 'select'
            ? Array.from(el.options).map((o, i) => ({value: o.value, text: (o.text || '').trim(), index: i}))
            : [],
        maxLength: el.maxLength > 0 ? el.maxLength : null,
        required: !!el.required || attr('aria-required') === 'true',
        value: el.value || '',
        rows: el.rows || 0,
        height: rect.height,
        visible: tag === 'select' || el.offsetParent !== null,
        disabled: !!el.disabled,
        readOnly: !!el.readOnly,
        ariaHidden: attr('aria-hidden') === 'true',
    };
}
"""


@dataclass
class Option:
    """One <option> of a select."""
    value: str
    text: str
    index: int = 0


@dataclass
class FieldContext:
    """Everything known about one form control at scan time."""
    tag: str = "input"
    type: str = "text"
    label: str = ""
    name: str = ""
    id: str = ""
    placeholder: str = ""
    aria_label: str = ""
    data_automation_id: str = ""
    data_field_name: str = ""
    class_name: str = ""
    section_hint: str = ""
    in_section_container: bool = False
    options: List[Option] = dataclass_field(default_factory=list)
    max_length: Optional[int] = None
    required: bool = False
    value: str = ""
    rows: int = 0
    height: float = 0.0
    visible: bool = True
    disabled: bool = False
    read_only: bool = False
    aria_hidden: bool = False

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "FieldContext":
        """Build from the dict returned by COLLECT_SCRIPT."""
        options = [
            Option(value=str(o.get("value") or ""), text=str(o.get("text") or ""), index=int(o.get("index", i)))
            for i, o in enumerate(raw.get("options") or [])
        ]
        return cls(
            tag=(raw.get("tag") or "input").lower(),
            type=(raw.get("type") or "text").lower(),
            label=raw.get("label") or "",
            name=raw.get("name") or "",
            id=raw.get("id") or "",
            placeholder=raw.get("placeholder") or "",
            aria_label=raw.get("ariaLabel") or "",
            data_automation_id=raw.get("dataAutomationId") or "",
            data_field_name=raw.get("dataFieldName") or "",
            class_name=raw.get("className") or "",
            section_hint=(raw.get("sectionHint") or "").lower(),
            in_section_container=bool(raw.get("inSectionContainer")),
            options=options,
            max_length=raw.get("maxLength") or None,
            required=bool(raw.get("required")),
            value=raw.get("value") or "",
            rows=int(raw.get("rows") or 0),
            height=float(raw.get("height") or 0),
            visible=bool(raw.get("visible", True)),
            disabled=bool(raw.get("disabled")),
            read_only=bool(raw.get("readOnly")),
            aria_hidden=bool(raw.get("ariaHidden")),
        )

    @property
    def is_select(self) -> bool:
        return self.tag == "select"

    @property
    def is_textarea(self) -> bool:
        return self.tag == "textarea"

    @property
    def is_text_like(self) -> bool:
        return not self.is_select and self.type not in ("checkbox", "radio", "file")

    @property
    def option_texts(self) -> List[str]:
        return [o.text for o in self.options]

    @property
    def combined(self) -> str:
        """All textual signals joined, lowercase. This is what rules match against."""
        parts = [
            self.name, self.id, self.placeholder, self.label, self.aria_label,
            self.data_automation_id, self.data_field_name, self.class_name,
        ]
        return tokenize(" ".join(p for p in parts if p))

    @property
    def in_repeating_section(self) -> bool:
        if self.in_section_container:
            return True
        return any(token in self.section_hint for token in REPEATING_SECTION_TOKENS)

    @property
    def display_name(self) -> str:
        return self.name or self.id or self.label[:40] or self.tag


def is_eligible(ctx: FieldContext) -> bool:
    """Visible, enabled and not hidden from assistive tech."""
    if ctx.type in SKIPPED_INPUT_TYPES:
        return False
    if ctx.disabled or ctx.aria_hidden:
        return False
    return ctx.is_select or ctx.visible


def collect_context(element: ElementHandle) -> Optional[FieldContext]:
    """Read one control. Returns None if the element went away mid-read."""
    try:
        raw = element.evaluate(COLLECT_SCRIPT)
    except PlaywrightError as e:
        logger.debug(f"Could not read field context: {e}")
        return None
    if not raw:
        return None
    return FieldContext.from_raw(raw)


def eligible_fields(root) -> List[Tuple[ElementHandle, FieldContext]]:
    """
    Query every control under root (a Page or ElementHandle) and keep the
    eligible ones. Always re-queries; callers must not cache across waits.
    """
    try:
        elements = root.query_selector_all(FIELD_SELECTOR)
    except PlaywrightError as e:
        logger.warning(f"Field query failed: {e}")
        return []

    result = []
    for el in elements:
        ctx = collect_context(el)
        if ctx is not None and is_eligible(ctx):
            result.append((el, ctx))
    return result
