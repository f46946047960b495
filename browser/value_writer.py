"""
Value Writer - puts a value into a control so that framework-managed state
(React, Angular, Vue) sees it.

Writes go through the prototype's native value setter, then the events a
human edit would produce are replayed: focus, input, change, blur. The value
is read back; if it didn't stick, one retry runs after a short delay.
After a successful write the control's error classes are swapped for valid
ones so client-side validators don't keep showing stale errors.
"""

import logging
import re
import time
from typing import Callable, List, Optional, Sequence, Union

from playwright.sync_api import ElementHandle, Error as PlaywrightError

from .config import ERROR_CLASSES, VALID_CLASSES, PARENT_ERROR_CLASSES, WRITE_RETRY_DELAY
from .dropdown import match_option
from .signals import FieldContext, tokenize

logger = logging.getLogger(__name__)


WRITE_TEXT_SCRIPT = r"""
(el, value) => {
    const proto = el.tagName === 'TEXTAREA' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
    const setter = Object.getOwnPropertyDescriptor(proto, 'value')?.set;
    const assign = (v) => { if (setter) setter.call(el, v); else el.value = v; };

    el.scrollIntoView({block: 'center'});
    el.focus();
    el.dispatchEvent(new FocusEvent('focus', {bubbles: true}));

    assign('');
    el.dispatchEvent(new Event('input', {bubbles: true}));

    assign(value);
    el.dispatchEvent(new InputEvent('input', {bubbles: true, cancelable: true, inputType: 'insertText', data: value}));
    el.dispatchEvent(new Event('change', {bubbles: true, cancelable: true}));
    el.dispatchEvent(new FocusEvent('blur', {bubbles: true}));
    el.dispatchEvent(new FocusEvent('focusout', {bubbles: true}));
    el.blur();

    return el.value;
}
"""

SELECT_SCRIPT = r"""
(el, index) => {
    el.focus();
    el.dispatchEvent(new FocusEvent('focus', {bubbles: true}));
    el.dispatchEvent(new MouseEvent('click', {bubbles: true}));

    const opt = el.options[index];
    const setter = Object.getOwnPropertyDescriptor(HTMLSelectElement.prototype, 'value')?.set;
    if (setter) setter.call(el, opt.value); else el.value = opt.value;
    el.selectedIndex = index;
    opt.selected = true;

    el.dispatchEvent(new Event('input', {bubbles: true}));
    el.dispatchEvent(new Event('change', {bubbles: true}));
    el.dispatchEvent(new FocusEvent('blur', {bubbles: true}));
    for (const type of ['mousedown', 'mouseup', 'click']) {
        el.dispatchEvent(new MouseEvent(type, {bubbles: true}));
    }
    return el.selectedIndex;
}
"""

RECONCILE_SCRIPT = r"""
(el, classes) => {
    if (el.value && String(el.value).trim()) {
        el.classList.remove(...classes.error);
        el.classList.add(...classes.valid);
        el.setAttribute('aria-invalid', 'false');
        if (el.parentElement) el.parentElement.classList.remove(...classes.parent);
    }
}
"""


MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
MONTH_RE = re.compile(r"\b(0?[1-9]|1[0-2])\b")
DAY_RE = re.compile(r"\b(0?[1-9]|[12][0-9]|3[01])\b")
# Full names or three-letter abbreviations ("Sept" too)
MONTH_NAME_RE = re.compile(
    r"\b(" + "|".join(MONTH_NAMES) + "|" + "|".join(m[:3] for m in MONTH_NAMES) + r"|sept)\b", re.I
)
ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _month(value: str) -> Optional[str]:
    # Drop the year first so '2020' can't donate a month
    without_year = YEAR_RE.sub(" ", value)
    match = MONTH_RE.search(without_year)
    if match:
        return match.group(1).zfill(2)
    name = MONTH_NAME_RE.search(value)
    if name:
        abbreviations = [m[:3] for m in MONTH_NAMES]
        return str(abbreviations.index(name.group(1).lower()[:3]) + 1).zfill(2)
    return None


def normalize_date(value: str, kind: str) -> str:
    """
    Format a free-form date for a native date/month control.

    month -> YYYY-MM, date -> YYYY-MM-DD. Missing month or day defaults to 01.
    Full ISO dates pass through. Values without a recognizable year are
    returned unchanged.
    """
    value = (value or "").strip()
    if kind == "date":
        iso = ISO_DATE_RE.search(value)
        if iso:
            return iso.group(0)

    year = YEAR_RE.search(value)
    if not year:
        return value

    month = _month(value) or "01"
    if kind == "month":
        return f"{year.group(0)}-{month}"
    return f"{year.group(0)}-{month}-01"


def smart_value(ctx: FieldContext, value: str) -> str:
    """Narrow a date-ish value for controls that only want one component."""
    if not YEAR_RE.search(value) and not MONTH_NAME_RE.search(value):
        return value

    context = tokenize(f"{ctx.id} {ctx.name} {ctx.label}")

    if re.search(r"\byear\b", context) and not re.search(r"\b(range|to|from)\b", context):
        match = YEAR_RE.search(value)
        return match.group(0) if match else value

    if re.search(r"\bmonth\b", context):
        return _month(value) or value

    if re.search(r"\bday\b", context):
        without_year = YEAR_RE.sub(" ", value)
        match = DAY_RE.search(without_year)
        return match.group(1).zfill(2) if match else value

    return value


class ValueWriter:
    """Writes values into controls. Never raises; failures return False."""

    def __init__(self, retry_delay: float = WRITE_RETRY_DELAY, sleep: Callable[[float], None] = time.sleep):
        self.retry_delay = retry_delay
        self.sleep = sleep

    def write(self, element: ElementHandle, ctx: FieldContext,
              value: Union[str, Sequence[str], None]) -> bool:
        """
        Write value (a string, or an ordered candidate list for selects).

        Returns True only when the control verifiably holds the value.
        """
        candidates = self._candidates(value)
        if not candidates:
            return False

        try:
            if ctx.is_select:
                return self._write_select(element, ctx, candidates)
            if ctx.type in ("checkbox", "radio", "file"):
                return False
            if ctx.type in ("date", "month"):
                return self._write_verified(element, ctx, normalize_date(candidates[0], ctx.type))
            return self._write_verified(element, ctx, smart_value(ctx, candidates[0]))
        except PlaywrightError as e:
            logger.warning(f"Write failed for '{ctx.display_name}': {e}")
            return False

    @staticmethod
    def _candidates(value) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(v) for v in value if v is not None and str(v).strip()]

    def _write_select(self, element: ElementHandle, ctx: FieldContext, candidates: List[str]) -> bool:
        option = match_option(ctx.options, candidates)
        if option is None:
            logger.info(f"No option in '{ctx.display_name}' matches {candidates[:3]}")
            return False

        selected = element.evaluate(SELECT_SCRIPT, option.index)
        if selected != option.index:
            logger.warning(f"Select '{ctx.display_name}' did not keep option '{option.text}'")
            return False

        self.reconcile(element)
        logger.info(f"Selected '{option.text}' in '{ctx.display_name}'")
        return True

    def _write_verified(self, element: ElementHandle, ctx: FieldContext, value: str) -> bool:
        for attempt in range(2):
            current = element.evaluate(WRITE_TEXT_SCRIPT, value)
            if (current or "").strip() == value.strip():
                self.reconcile(element)
                logger.info(f"Filled '{ctx.display_name}': {value[:60]!r}")
                return True
            if attempt == 0:
                logger.debug(f"Value did not stick in '{ctx.display_name}', retrying")
                self.sleep(self.retry_delay)

        logger.warning(f"Could not fill '{ctx.display_name}' (framework rejected value)")
        return False

    def reconcile(self, element: ElementHandle):
        """Swap error classes for valid ones on a filled control."""
        try:
            element.evaluate(RECONCILE_SCRIPT, {
                "error": ERROR_CLASSES,
                "valid": VALID_CLASSES,
                "parent": PARENT_ERROR_CLASSES,
            })
        except PlaywrightError as e:
            logger.debug(f"Validity reconcile failed: {e}")

    def upload_file(self, element: ElementHandle, name: str, data: bytes,
                    mime_type: str = "application/pdf") -> bool:
        """Attach a file to an <input type=file>."""
        try:
            element.set_input_files({"name": name, "mimeType": mime_type, "buffer": data})
            return True
        except PlaywrightError as e:
            logger.warning(f"Upload of {name} failed: {e}")
            return False
