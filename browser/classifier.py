"""
Field Classifier - decides what a form control is asking for.

Stateless. Rules live in an ordered table (RULES); classify() walks it and
the first rule that fires decides the field. A rule fires when:
    (its input type matches, its trigger predicate holds, or one of its
     patterns matches the combined context)
    AND none of its anti-patterns match
    AND its control constraints hold (select-only, textarea-only, ...)

A firing rule whose resolver finds no data either falls through to the next
rule (the default), stops (field stays blank), or asks for generated content.

Order: contact -> identity -> location -> links -> education/experience
summary -> compliance/EEO and preferences -> free text.
"""

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .profile import FillData
from .signals import FieldContext
from . import synonyms

logger = logging.getLogger(__name__)

Value = Union[str, List[str], None]
Resolver = Callable[[FieldContext, FillData], Value]


@dataclass
class ClassificationResult:
    """category=None means leave the control alone (unless generate is set)."""
    category: Optional[str] = None
    score: float = 0.0
    value: Value = None
    ambiguous: bool = False
    generate: bool = False
    label: str = ""
    source: str = "profile"

    @property
    def has_value(self) -> bool:
        if isinstance(self.value, list):
            return any(v for v in self.value)
        return bool(self.value)


@dataclass
class Rule:
    category: str
    label: str
    group: str
    patterns: Sequence[str] = ()
    requires: Sequence[str] = ()         # every one of these must also match
    anti_patterns: Sequence[str] = ()
    input_types: Tuple[str, ...] = ()
    type_overrides_anti: bool = False    # an input_types match ignores anti_patterns
    trigger: Optional[Callable[[FieldContext], bool]] = None
    select_only: bool = False
    text_only: bool = False
    textarea_only: bool = False
    exclude_types: Tuple[str, ...] = ()
    section: bool = False               # True: only inside repeating sections
    resolve: Resolver = lambda ctx, data: None
    stop_on_miss: bool = False
    generate_on_miss: bool = False
    ambiguous: bool = False
    source: str = "profile"

    _compiled: List[re.Pattern] = dataclass_field(default_factory=list, init=False, repr=False)
    _compiled_required: List[re.Pattern] = dataclass_field(default_factory=list, init=False, repr=False)
    _compiled_anti: List[re.Pattern] = dataclass_field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        self._compiled = [re.compile(p) for p in self.patterns]
        self._compiled_required = [re.compile(p) for p in self.requires]
        self._compiled_anti = [re.compile(p) for p in self.anti_patterns]

    def constraints_hold(self, ctx: FieldContext) -> bool:
        if self.select_only and not ctx.is_select:
            return False
        if self.text_only and ctx.is_select:
            return False
        if self.textarea_only and not ctx.is_textarea:
            return False
        if ctx.type in self.exclude_types:
            return False
        if ctx.in_repeating_section != self.section:
            return False
        return True

    def match_score(self, ctx: FieldContext, context: str) -> float:
        """0 if the rule does not fire, otherwise a rough confidence."""
        if not self.constraints_hold(ctx):
            return 0.0
        type_match = bool(self.input_types) and ctx.type in self.input_types
        anti_applies = not (type_match and self.type_overrides_anti)
        if anti_applies and any(p.search(context) for p in self._compiled_anti):
            return 0.0
        if not all(p.search(context) for p in self._compiled_required):
            return 0.0

        score = float(sum(1 for p in self._compiled if p.search(context)))
        if type_match:
            score += 1.0
        if self.trigger is not None and self.trigger(ctx):
            score += 1.0
        return score


# ═══════════════════════════════════════════════════════════════════════════
# VALUE HELPERS
# ═══════════════════════════════════════════════════════════════════════════

def fit_to_length(text: str, max_length: Optional[int]) -> str:
    """Truncate to max_length, marking the cut with '...'."""
    if not max_length or max_length <= 0 or len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3].rstrip() + "..."


def shorten_cover_letter(text: str, max_length: Optional[int]) -> str:
    """Too long: keep the opening and closing paragraph, then truncate."""
    if not max_length or max_length <= 0 or len(text) <= max_length:
        return text
    paragraphs = [p for p in re.split(r"\n\s*\n", text) if p.strip()]
    if len(paragraphs) > 1:
        text = paragraphs[0].strip() + "\n\n" + paragraphs[-1].strip()
    return fit_to_length(text, max_length)


def _by_control(select_value: Callable[[FillData], Value], text_value: Callable[[FillData], Value]) -> Resolver:
    return lambda ctx, data: select_value(data) if ctx.is_select else text_value(data)


def _attr(name: str) -> Resolver:
    """Plain profile attribute; selects get it as a single candidate."""
    def resolve(ctx: FieldContext, data: FillData) -> Value:
        value = getattr(data, name, "")
        if not value:
            return None
        return [value] if ctx.is_select else value
    return resolve


def _work_authorization(ctx: FieldContext, data: FillData) -> Value:
    context = ctx.combined
    if "sponsor" in context:
        needs = (data.sponsorship_required or "no").lower().startswith("y")
        candidates = synonyms.WORK_AUTHORIZED if needs else synonyms.SPONSORSHIP_NOT_REQUIRED
    else:
        authorized = not (data.work_authorization or "yes").lower().startswith("n")
        candidates = synonyms.WORK_AUTHORIZED if authorized else synonyms.SPONSORSHIP_NOT_REQUIRED
    return list(candidates) if ctx.is_select else candidates[0]


def _cover_letter(ctx: FieldContext, data: FillData) -> Value:
    return data.cover_letter or None


def _is_large_textarea(ctx: FieldContext) -> bool:
    return ctx.rows > 4 or ctx.height > 100


NAME_TOKENS = r"\b(name|fname|lname|firstname|lastname|surname)\b"
NON_PERSONAL = (
    r"\b(company|employer|organization|organisation|business|project|school|university|"
    r"college|institution|degree|course|program|programme|local)\b"
)
SECOND_ADDRESS_LINE = r"\b(line ?2|address ?2|addr ?2)\b"
# Location rules never write into these, whatever the label says
CONTACT_TYPES = ("tel", "email", "url")


# ═══════════════════════════════════════════════════════════════════════════
# RULE TABLE
# ═══════════════════════════════════════════════════════════════════════════

RULES: List[Rule] = [
    # --- contact ---
    Rule("email", "Email", "contact",
         patterns=[r"\be ?mail\b"], input_types=("email",),
         resolve=_attr("email")),
    Rule("phone_country_code", "Phone Country Code", "contact",
         patterns=[r"\bphone\b.*\bcountry\b", r"\bcountry\b.*\b(phone|mobile|tel)\b",
                   r"\b(phone|mobile|tel)\b.*\bcountry\b", r"\bcountry\b.*\bcode\b",
                   r"\bdial(ing)?\b.*\bcode\b", r"\b(phone|telephone|calling)\b.*\bcode\b"],
         select_only=True, stop_on_miss=True,
         resolve=lambda ctx, data: synonyms.phone_country_codes(data.phone_country, data.country)),
    Rule("phone", "Phone", "contact",
         patterns=[r"\b(phone|mobile|telephone)\b", r"\bcontact\b.*\bnumber\b"],
         anti_patterns=[r"country", r"\bcode\b"], input_types=("tel",), type_overrides_anti=True,
         resolve=_attr("phone")),

    # --- identity ---
    # Names inside work/education/project entries belong to the section engine
    Rule("name_in_section", "Name", "identity",
         patterns=[NAME_TOKENS], section=True, stop_on_miss=True, ambiguous=True),
    Rule("name_non_personal", "Name", "identity",
         patterns=[NAME_TOKENS], requires=[NON_PERSONAL], generate_on_miss=True, ambiguous=True),
    Rule("first_name", "First Name", "identity",
         patterns=[r"\bfirst ?name\b", r"\bgiven ?name", r"\bfname\b"],
         anti_patterns=[r"\b(last|family|sur)\b", r"\bsurname\b", NON_PERSONAL],
         text_only=True, resolve=_attr("first_name")),
    Rule("last_name", "Last Name", "identity",
         patterns=[r"\blast ?name\b", r"\bfamily ?name\b", r"\bsurname\b", r"\blname\b"],
         anti_patterns=[r"\b(first|given)\b", NON_PERSONAL],
         text_only=True, resolve=_attr("last_name")),
    Rule("full_name", "Full Name", "identity",
         patterns=[r"\b(full|complete|legal|your|applicant|candidate) ?name\b"],
         anti_patterns=[NON_PERSONAL],
         text_only=True, resolve=_attr("full_name")),
    # Bare "name" that could not be pinned down: ask the generator, never guess
    Rule("name", "Personal Name", "identity",
         patterns=[r"\bname\b"], anti_patterns=[NON_PERSONAL],
         generate_on_miss=True, stop_on_miss=True, ambiguous=True),

    # --- location ---
    Rule("address", "Address", "location",
         patterns=[r"\bstreet\b", r"\baddress\b.*\bline\b", r"\baddress ?1\b", r"\baddr ?1\b",
                   r"\bhome\b.*\baddress\b"],
         anti_patterns=[r"mail", SECOND_ADDRESS_LINE], resolve=_attr("address")),
    Rule("city", "City", "location",
         patterns=[r"\b(city|town)\b"], anti_patterns=[r"country"], exclude_types=CONTACT_TYPES,
         resolve=_attr("city"), generate_on_miss=True),
    Rule("state", "State/Province", "location",
         patterns=[r"\b(state|province|region|county)\b"], anti_patterns=[r"country", r"\bunited states\b"],
         exclude_types=CONTACT_TYPES,
         resolve=_by_control(lambda d: [d.state, d.state.upper()] if d.state else None,
                             lambda d: d.state or None),
         generate_on_miss=True),
    Rule("postal_code", "ZIP Code", "location",
         patterns=[r"\b(zip|postal ?code|post ?code|pincode|pin ?code)\b"], resolve=_attr("postal_code")),
    Rule("country", "Country", "location",
         patterns=[r"\b(country|nation|citizenship)\b"],
         exclude_types=CONTACT_TYPES,
         resolve=_by_control(lambda d: synonyms.country_variants(d.country) or None,
                             lambda d: d.country or None),
         stop_on_miss=True, generate_on_miss=True),
    Rule("location", "Location", "location",
         patterns=[r"\blocation\b", r"\baddress\b", r"\bwhere\b.*\blive\b"],
         anti_patterns=[r"mail", SECOND_ADDRESS_LINE], exclude_types=CONTACT_TYPES,
         resolve=_by_control(lambda d: synonyms.location_variants(d.location, d.city, d.state) or None,
                             lambda d: d.location or None),
         stop_on_miss=True, generate_on_miss=True),

    # --- links ---
    Rule("linkedin", "LinkedIn", "links",
         patterns=[r"\blinked ?in\b"], resolve=_attr("linkedin")),
    Rule("github", "GitHub", "links",
         patterns=[r"\bgit ?hub\b", r"\bgit\b"], resolve=_attr("github")),
    Rule("twitter", "Twitter", "links",
         patterns=[r"\btwitter\b", r"\bsocial\b.*\bmedia\b"], anti_patterns=[r"\blinked ?in\b"],
         resolve=_attr("twitter")),
    Rule("website", "Website", "links",
         patterns=[r"\b(website|portfolio|homepage|blog)\b", r"\bpersonal\b.*\bsite\b"],
         input_types=("url",), resolve=_attr("website")),

    # --- education / experience summary ---
    Rule("degree", "Education Degree", "education",
         patterns=[r"\b(education|degree|qualification)\b", r"\bhighest\b.*\beducation\b"],
         resolve=_by_control(lambda d: synonyms.degree_variants(d.degree),
                             lambda d: d.degree or None),
         stop_on_miss=True),
    Rule("graduation_year", "Graduation Year", "education",
         patterns=[r"\bgraduation\b.*\byear\b", r"\byear\b.*\bgraduat", r"\bgrad\b.*\byear\b"],
         resolve=_attr("graduation_year")),
    Rule("university", "University", "education",
         patterns=[r"\b(university|college|school|institution)\b"], anti_patterns=[r"\bhigh\b"],
         resolve=_attr("university")),
    Rule("gpa", "GPA", "education",
         patterns=[r"\bgpa\b", r"\bgrade\b.*\bpoint\b"], resolve=_attr("gpa")),
    Rule("field_of_study", "Field of Study", "education",
         patterns=[r"\b(major|specialization|specialisation)\b", r"\b(field|area)\b.*\bstudy\b"],
         text_only=True, resolve=_attr("field_of_study")),
    Rule("years_of_experience", "Years of Experience", "experience",
         patterns=[r"\byears?\b.*\bexperience\b", r"\bexperience\b.*\byears?\b", r"\byoe\b",
                   r"\btotal\b.*\bexperience\b"],
         resolve=_by_control(lambda d: synonyms.years_variants(d.years_of_experience) or None,
                             lambda d: d.years_of_experience or None)),
    Rule("current_company", "Current Company", "experience",
         patterns=[r"\bcurrent\b.*\b(company|employer)\b", r"\bemployer\b"],
         resolve=_attr("current_company")),
    Rule("current_title", "Current Title", "experience",
         patterns=[r"\bcurrent\b.*\b(title|position|role)\b", r"\bjob\b.*\btitle\b",
                   r"\bposition\b.*\btitle\b"],
         resolve=_attr("current_title")),

    # --- compliance / preferences ---
    Rule("work_authorization", "Work Authorization", "compliance",
         patterns=[r"\bwork\b.*\bauthori[sz]", r"\bauthori[sz]ed\b.*\bwork\b", r"\blegally\b.*\bwork\b",
                   r"\bright\b.*\bwork\b", r"\bvisa\b.*\bstatus\b", r"\bsponsor(ship)?\b"],
         resolve=_work_authorization, stop_on_miss=True),
    Rule("employment_type", "Employment Type", "preferences",
         patterns=[r"\b(employment|job|position|work)\b.*\btype\b"], select_only=True,
         resolve=lambda ctx, data: list(synonyms.EMPLOYMENT_TYPES), stop_on_miss=True, source="default"),
    Rule("availability", "Availability", "preferences",
         patterns=[r"\bavailability\b", r"\bnotice\b.*\bperiod\b", r"\bstart\b.*\bdate\b",
                   r"\bwhen\b.*\bstart\b", r"\bavailable\b.*\bstart\b", r"\bjoin\b.*\bdate\b"],
         exclude_types=("date", "month"),
         resolve=_by_control(lambda d: list(synonyms.AVAILABILITY), lambda d: synonyms.AVAILABILITY[0]),
         stop_on_miss=True, source="default"),
    Rule("salary", "Salary", "preferences",
         patterns=[r"\b(salary|compensation)\b", r"\bpay\b.*\brange\b"],
         resolve=_by_control(lambda d: list(synonyms.SALARY), lambda d: synonyms.SALARY[0]),
         stop_on_miss=True, source="default"),
    Rule("gender", "Gender", "eeo",
         patterns=[r"\b(gender|sex)\b"], anti_patterns=[r"sexual"], select_only=True,
         resolve=lambda ctx, data: synonyms.gender_variants(data.gender)),
    Rule("disability", "Disability Status", "eeo",
         patterns=[r"\b(disability|disabled|handicap)\b"], select_only=True,
         resolve=lambda ctx, data: synonyms.disability_variants(data.disability)),
    Rule("veteran", "Veteran Status", "eeo",
         patterns=[r"\b(veteran|military)\b"], select_only=True,
         resolve=lambda ctx, data: synonyms.veteran_variants(data.veteran)),
    Rule("ethnicity", "Ethnicity", "eeo",
         patterns=[r"\b(ethnicity|race|ethnic)\b"], select_only=True,
         resolve=lambda ctx, data: synonyms.ethnicity_variants(data.ethnicity)),

    # --- free text ---
    Rule("skills", "Skills", "free_text",
         patterns=[r"\b(skills|expertise|technologies|competencies)\b"], text_only=True,
         resolve=_attr("skills")),
    Rule("summary", "Summary", "free_text",
         patterns=[r"\b(summary|bio|profile|introduction|objective)\b", r"\babout\b.*\byou(rself)?\b"],
         textarea_only=True, resolve=_attr("summary")),
    Rule("cover_letter", "Cover Letter", "free_text",
         patterns=[r"\bcover\b.*\bletter\b", r"\bwhy\b.*\b(you|interest|interested|apply)\b",
                   r"\bmotivation\b", r"\bmessage\b", r"\badditional\b.*\binfo", r"\btell\b.*\bus\b.*\babout\b"],
         trigger=_is_large_textarea, textarea_only=True, resolve=_cover_letter),
]



class FieldClassifier:
    """Walks the rule table for one field."""

    def __init__(self, rules: Optional[List[Rule]] = None):
        self.rules = rules if rules is not None else RULES

    def classify(self, ctx: FieldContext, data: FillData) -> ClassificationResult:
        context = ctx.combined

        for rule in self.rules:
            score = rule.match_score(ctx, context)
            if score <= 0:
                continue

            value = rule.resolve(ctx, data)
            result = ClassificationResult(
                category=rule.category,
                score=score,
                value=value,
                ambiguous=rule.ambiguous,
                label=rule.label,
                source=rule.source,
            )

            if result.has_value:
                result.value = self._fit(ctx, rule, value)
                return result

            if rule.generate_on_miss:
                logger.debug(f"'{ctx.display_name}' matched {rule.category} but no data, requesting generation")
                result.value = None
                result.generate = True
                if rule.ambiguous:
                    result.category = None
                return result

            if rule.stop_on_miss:
                logger.debug(f"'{ctx.display_name}' matched {rule.category}, leaving blank")
                result.value = None
                if rule.ambiguous:
                    result.category = None
                return result

        return ClassificationResult()

    @staticmethod
    def _fit(ctx: FieldContext, rule: Rule, value: Value) -> Value:
        if not isinstance(value, str) or ctx.is_select:
            return value
        if rule.category == "cover_letter":
            return shorten_cover_letter(value, ctx.max_length)
        return fit_to_length(value, ctx.max_length)
