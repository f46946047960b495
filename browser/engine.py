"""
Autofill Engine - one fill pass over the current page.

Flow:
1. Let late-rendering frameworks settle
2. Build fill data from the profile (or, legacy, from a parsed resume)
3. Singleton pass: classify every eligible control and write its value,
   asking the generation service for fields the rules flag
4. Attach the resume PDF to the resume file input
5. Repeating sections: work, then education, then projects
6. Validation sweep so client-side validators drop stale errors

run() never raises; problems come back as {"status": "error", ...}.
"""

import base64
import binascii
import logging
import time
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Optional

from playwright.sync_api import Page, Error as PlaywrightError

from .classifier import FieldClassifier
from .config import FIELD_SELECTOR, FILE_INPUT_SELECTOR, POLL_INTERVAL, PREFILLED_MIN_LENGTH, SETTLE_DELAY, VALIDATION_PASSES
from .form_logger import FormLogger
from .profile import FillData, Profile, profile_from_resume
from .sections import RepeatingSectionFiller, SectionResult
from .signals import FieldContext, collect_context, eligible_fields
from .value_writer import ValueWriter
from utils.generation import GenerationSession, generate_field_content

logger = logging.getLogger(__name__)

NO_DATA_ERROR = "No data available"

FORM_CHANGE_SCRIPT = """
() => document.querySelectorAll('form').forEach(f => f.dispatchEvent(new Event('change', {bubbles: true})))
"""


@dataclass
class FillRequest:
    """Incoming fill message. Keys arrive camelCase."""
    profile: Optional[Dict[str, Any]] = None
    resume_text: str = ""
    resume_parsed: Optional[Dict[str, Any]] = None
    cover_letter: str = ""
    job_description: str = ""

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, Any]]) -> "FillRequest":
        payload = payload or {}
        return cls(
            profile=payload.get("profile") or None,
            resume_text=payload.get("resumeText") or "",
            resume_parsed=payload.get("resumeParsed") or None,
            cover_letter=payload.get("coverLetter") or "",
            job_description=payload.get("jobDescription") or "",
        )


@dataclass
class FillReport:
    status: str = "ok"
    fields: List[str] = dataclass_field(default_factory=list)
    error: Optional[str] = None
    sections: List[SectionResult] = dataclass_field(default_factory=list)

    @property
    def filled_count(self) -> int:
        return len(self.fields)

    @property
    def filled(self) -> bool:
        return self.filled_count > 0

    def to_dict(self) -> Dict[str, Any]:
        if self.status == "error":
            return {"status": "error", "error": self.error}
        return {
            "status": self.status,
            "filled": self.filled,
            "filledCount": self.filled_count,
            "fields": list(self.fields),
        }


def decode_pdf(data: str) -> Optional[bytes]:
    """Base64 (optionally a data: URL) to bytes."""
    if not data:
        return None
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Resume PDF is not valid base64: {e}")
        return None


class AutofillEngine:
    """Fills the form on one page from one request."""

    def __init__(
        self,
        page: Page,
        session: Optional[GenerationSession] = None,
        writer: Optional[ValueWriter] = None,
        classifier: Optional[FieldClassifier] = None,
        form_logger: Optional[FormLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
        settle_delay: float = SETTLE_DELAY,
    ):
        self.page = page
        self.session = session
        self.sleep = sleep
        self.writer = writer or ValueWriter(sleep=sleep)
        self.classifier = classifier or FieldClassifier()
        self.form_logger = form_logger
        self.settle_delay = settle_delay

    def run(self, payload: Optional[Dict[str, Any]]) -> FillReport:
        request = FillRequest.from_dict(payload)
        report = FillReport()

        if self.form_logger:
            self.form_logger.start_session(url=self._page_url())

        try:
            self._run(request, report)
        except PlaywrightError as e:
            logger.error(f"Fill pass aborted: {e}")
            report.status, report.error = "error", str(e)
        except Exception as e:
            logger.exception(f"Fill pass failed: {e}")
            report.status, report.error = "error", str(e)

        if self.form_logger:
            if report.error:
                self.form_logger.log_error(report.error)
            self.form_logger.end_session("error" if report.status == "error" else "completed")

        logger.info(f"Fill pass done: {report.status}, {report.filled_count} fields")
        return report

    def _page_url(self) -> str:
        try:
            return self.page.url
        except PlaywrightError:
            return ""

    def _run(self, request: FillRequest, report: FillReport):
        self.sleep(self.settle_delay)

        profile: Optional[Profile] = None
        if request.profile:
            profile = Profile.from_dict(request.profile)
            data = FillData.from_profile(profile, request.cover_letter)
        elif request.resume_parsed or request.resume_text:
            logger.info("No profile, using legacy resume data")
            data = profile_from_resume(request.resume_parsed, request.resume_text, request.cover_letter)
        else:
            report.status, report.error = "error", NO_DATA_ERROR
            return

        self.fill_singletons(data, request.job_description, report)

        if profile is not None:
            if profile.resume_pdf_base64:
                self.upload_resume(profile, report)
            self.fill_sections(profile, report)

        self.validation_sweep()

    # ─────────────────────────────────────────────────────────────────
    # Singleton fields
    # ─────────────────────────────────────────────────────────────────

    def fill_singletons(self, data: FillData, job_description: str, report: FillReport):
        fields = eligible_fields(self.page)
        logger.info(f"Scanning {len(fields)} fields")

        for element, ctx in fields:
            if ctx.type in ("checkbox", "radio", "file"):
                continue
            if ctx.is_text_like and len(ctx.value.strip()) > PREFILLED_MIN_LENGTH:
                logger.debug(f"Keeping existing value in '{ctx.display_name}'")
                continue

            result = self.classifier.classify(ctx, data)
            if result.generate:
                value = generate_field_content(self.session, self._field_info(ctx), data.context_text, job_description)
                source = "ai"
                name = result.category or ctx.display_name
            elif result.category and result.has_value:
                value = result.value
                source = result.source
                name = result.category
            else:
                continue

            if not value:
                self._log_field(ctx, result.category, "", source, False)
                continue

            success = self.writer.write(element, ctx, value)
            if success:
                report.fields.append(name)
            self._log_field(ctx, result.category, value, source, success,
                            None if success else "write not verified")

    @staticmethod
    def _field_info(ctx: FieldContext) -> Dict[str, Any]:
        return {
            "label": ctx.label,
            "name": ctx.name,
            "placeholder": ctx.placeholder,
            "type": ctx.type,
            "maxLength": ctx.max_length,
            "section": ctx.section_hint[:80],
        }

    def _log_field(self, ctx: FieldContext, category: Optional[str], value, source: str,
                   success: bool, error: Optional[str] = None):
        if not self.form_logger:
            return
        shown = value[0] if isinstance(value, list) and value else value
        self.form_logger.log_field(ctx.display_name, ctx.type, ctx.label, category,
                                   str(shown or ""), source, success, error)

    # ─────────────────────────────────────────────────────────────────
    # Resume upload
    # ─────────────────────────────────────────────────────────────────

    def upload_resume(self, profile: Profile, report: FillReport) -> bool:
        """Resume/CV file input if one is labelled so, else the first file input."""
        data = decode_pdf(profile.resume_pdf_base64)
        if not data:
            return False

        inputs = self.page.query_selector_all(FILE_INPUT_SELECTOR)
        if not inputs:
            logger.debug("No file inputs for resume")
            return False

        target = inputs[0]
        for element in inputs:
            ctx = collect_context(element)
            if ctx and any(w in ctx.combined.split() for w in ("resume", "cv")):
                target = element
                break

        name = profile.resume_pdf_name or "resume.pdf"
        if self.writer.upload_file(target, name, data):
            logger.info(f"Attached {name}")
            report.fields.append("resume")
            return True
        return False

    # ─────────────────────────────────────────────────────────────────
    # Repeating sections
    # ─────────────────────────────────────────────────────────────────

    def fill_sections(self, profile: Profile, report: FillReport):
        filler = RepeatingSectionFiller(self.page, self.writer, sleep=self.sleep)
        for result in filler.fill_profile(profile):
            report.sections.append(result)
            report.fields.extend(result.fields)
            if self.form_logger:
                self.form_logger.log_section(result.entity, result.state.value, result.entries_total,
                                             result.entries_filled, result.fields, result.error)

    # ─────────────────────────────────────────────────────────────────
    # Validation sweep
    # ─────────────────────────────────────────────────────────────────

    def validation_sweep(self, passes: int = VALIDATION_PASSES):
        """Re-run validity reconciliation on every filled control, then poke the forms."""
        for i in range(passes):
            for element in self.page.query_selector_all(FIELD_SELECTOR):
                self.writer.reconcile(element)
            if i < passes - 1:
                self.sleep(POLL_INTERVAL)
        self.page.evaluate(FORM_CHANGE_SCRIPT)
