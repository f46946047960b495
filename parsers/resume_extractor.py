"""
Resume Extractor - turns loosely formatted model output into a profile record.

Two output conventions are understood:

1. Delimiter blocks (what MASTER_PROMPT asks for):

    BASIC INFO:
    First Name: Ada
    ...
    WORK EXPERIENCE:
    JOB_START
    Company: Analytical Engines Ltd
    Title: Engineer
    Start: 01/2020
    End: Present
    JOB_END

2. A single JSON object, possibly wrapped in prose or code fences and
   possibly malformed. The object is located by a string-aware brace scan and
   repaired step by step until json.loads accepts it.

The result is a camelCase dict in the Profile storage shape. A record is only
accepted with a name/email or at least one job; otherwise extract() returns
None and the user has to fill the profile by hand.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from browser.profile import Education, Project, WorkExperience, split_location
from utils.generation import Availability, GenerationSession

logger = logging.getLogger(__name__)

MANUAL_ENTRY_MESSAGE = (
    "Could not extract enough information from the resume. "
    "Please fill the form manually."
)


class ResumeParseError(Exception):
    """Every extraction strategy failed. str(e) is safe to show the user."""


SCALAR_FIELDS = [
    "firstName", "lastName", "email", "phone",
    "address", "city", "state", "postalCode", "country",
    "linkedin", "github", "portfolio", "twitter",
    "skills", "summary",
]


def empty_record() -> Dict[str, Any]:
    record: Dict[str, Any] = {key: "" for key in SCALAR_FIELDS}
    record.update({"workExperience": [], "education": [], "projects": []})
    return record


def is_valid_record(data: Any) -> bool:
    """Needs a name or email, or at least one job."""
    if not isinstance(data, dict):
        return False
    has_identity = any(str(data.get(k) or "").strip() for k in ("firstName", "lastName", "email"))
    jobs = data.get("workExperience")
    has_jobs = isinstance(jobs, list) and len(jobs) > 0
    return has_identity or has_jobs


# ═══════════════════════════════════════════════════════════════════════════
# DELIMITER FORMAT
# ═══════════════════════════════════════════════════════════════════════════

SECTION_HEADERS = {
    "BASIC INFO:": "basic",
    "SKILLS:": "skills",
    "SUMMARY:": "summary",
    "WORK EXPERIENCE:": "work",
    "EDUCATION:": "education",
    "PROJECTS:": "projects",
}

BASIC_KEYS = {
    "first name": "firstName",
    "last name": "lastName",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "city": "city",
    "state": "state",
    "postal code": "postalCode",
    "zip": "postalCode",
    "country": "country",
    "linkedin": "linkedin",
    "github": "github",
    "portfolio": "portfolio",
    "website": "portfolio",
    "twitter": "twitter",
}

JOB_KEYS = {
    "company": "company", "title": "title", "location": "location",
    "start": "startDate", "end": "endDate", "description": "description",
}
EDU_KEYS = {
    "institution": "institution", "degree": "degree", "field": "field",
    "graduated": "graduationDate", "gpa": "gpa",
}
PROJ_KEYS = {
    "name": "name", "description": "description", "technologies": "technologies",
    "url": "url", "link": "url",
}

# (start marker, end marker, section, key map, required keys, record factory)
BLOCKS = {
    "JOB_START": ("JOB_END", "workExperience", JOB_KEYS, ("company", "title"),
                  lambda: WorkExperience().to_dict()),
    "EDU_START": ("EDU_END", "education", EDU_KEYS, ("institution", "degree"),
                  lambda: Education().to_dict()),
    "PROJ_START": ("PROJ_END", "projects", PROJ_KEYS, ("name",),
                   lambda: Project().to_dict()),
}

NA_RE = re.compile(r"\bN/A\b", re.I)


def _clean(value: str) -> str:
    return NA_RE.sub("", value).strip()


def _date(value: str) -> str:
    """'Jan 01/2020' -> '01/2020'. 'Present' survives as-is."""
    if "present" in value.lower():
        return "Present"
    return re.sub(r"[^0-9/]", "", _clean(value))[:7]


def _key_value(line: str):
    key, sep, value = line.partition(":")
    if not sep:
        return None, None
    return key.strip().lower(), value


def has_delimiters(text: str) -> bool:
    return any(marker in text for marker in ("BASIC INFO:", "JOB_START", "EDU_START", "PROJ_START"))


def parse_delimited(text: str) -> Dict[str, Any]:
    """Line-by-line parse with a current-section pointer."""
    result = empty_record()
    section = ""
    block: Optional[Dict[str, str]] = None
    block_marker = ""

    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue

        header = next((h for h in SECTION_HEADERS if trimmed.startswith(h)), None)
        if header:
            section = SECTION_HEADERS[header]
            block = None
            inline = trimmed[len(header):].strip()
            if inline and section in ("skills", "summary"):
                result[section] = _clean(inline)
                if section == "skills":
                    section = ""
            continue

        # Template instructions echoed back by the model
        if trimmed.startswith("[") and trimmed.endswith("]"):
            continue

        if trimmed in BLOCKS:
            block_marker = trimmed
            block = BLOCKS[trimmed][4]()
            continue

        if block is not None:
            end_marker, target, keys, required, _ = BLOCKS[block_marker]
            if trimmed == end_marker:
                if all(block.get(k) for k in required):
                    result[target].append(block)
                else:
                    logger.debug(f"Dropping incomplete {target} record: {block}")
                block = None
                continue
            key, value = _key_value(trimmed)
            if key in keys:
                field = keys[key]
                block[field] = _date(value) if field in ("startDate", "endDate", "graduationDate") else _clean(value)
            continue

        if section == "basic":
            key, value = _key_value(trimmed)
            if key in BASIC_KEYS:
                result[BASIC_KEYS[key]] = _clean(value)
        elif section == "skills":
            result["skills"] = _clean(trimmed)
            section = ""
        elif section == "summary":
            cleaned = _clean(trimmed)
            if cleaned:
                result["summary"] = f"{result['summary']} {cleaned}".strip()

    return result


# ═══════════════════════════════════════════════════════════════════════════
# JSON FORMAT
# ═══════════════════════════════════════════════════════════════════════════

def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*", "", text, flags=re.I)
    text = re.sub(r"\s*```$", "", text)
    return text.strip()


def find_json_object(text: str) -> Optional[str]:
    """
    From the first '{', track depth until it returns to zero.
    Braces inside string literals don't count. None if never balanced.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def strip_trailing_commas(text: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", text)


def normalize_quotes(text: str) -> str:
    return re.sub("[“”„‟″]", '"', re.sub("[‘’‚‛′]", "'", text))


def strip_control_chars(text: str) -> str:
    # Keeps \t, \n and \r; raw newlines in strings are handled last
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)


def escape_stray_backslashes(text: str) -> str:
    # Valid escapes are consumed as pairs so an escaped backslash stays intact
    return re.sub(r'\\(["\\/bfnrtu])|\\', lambda m: m.group(0) if m.group(1) else "\\\\", text)


def escape_newlines_in_strings(text: str) -> str:
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                out.append("\\n")
                continue
            elif ch == "\r":
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


REPAIRS: List[Callable[[str], str]] = [
    strip_trailing_commas,
    normalize_quotes,
    strip_control_chars,
    escape_stray_backslashes,
    escape_newlines_in_strings,
]


def repair_and_parse(candidate: str) -> Optional[Any]:
    """Try as-is, then after each repair (cumulative). None if all fail."""
    for step in [None] + REPAIRS:
        if step is not None:
            candidate = step(candidate)
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"JSON parse failed ({step.__name__ if step else 'raw'}): {e}")
        except RecursionError:
            # Nesting depth survives every repair
            logger.warning("JSON nested too deeply to parse")
            return None
    return None


def parse_json_text(text: str) -> Optional[Any]:
    if not text:
        return None
    cleaned = strip_code_fences(text)
    candidate = find_json_object(cleaned)
    if candidate is None:
        # Smart-quoted JSON hides its strings from the scan
        candidate = find_json_object(normalize_quotes(cleaned))
    if candidate is None:
        return None
    return repair_and_parse(candidate)


KEY_ALIASES = {
    "first_name": "firstName", "firstname": "firstName", "given_name": "firstName",
    "last_name": "lastName", "lastname": "lastName", "surname": "lastName", "family_name": "lastName",
    "email_address": "email", "mail": "email",
    "phone_number": "phone", "mobile": "phone", "telephone": "phone",
    "postal_code": "postalCode", "postalcode": "postalCode", "zip": "postalCode", "zip_code": "postalCode",
    "linkedin_url": "linkedin", "github_url": "github",
    "website": "portfolio", "portfolio_url": "portfolio", "personal_website": "portfolio",
    "twitter_url": "twitter",
    "professional_summary": "summary", "about": "summary", "objective": "summary",
    "work_experience": "workExperience", "workexperience": "workExperience", "experience": "workExperience",
    "experiences": "workExperience", "jobs": "workExperience", "employment": "workExperience",
    "employment_history": "workExperience",
    "educations": "education",
    "project": "projects",
}


def _canonical_key(key: str) -> str:
    lowered = key.strip().lower()
    if lowered in KEY_ALIASES:
        return KEY_ALIASES[lowered]
    for target in SCALAR_FIELDS + ["workExperience", "education", "projects"]:
        if target.lower() == lowered:
            return target
    return key


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return NA_RE.sub("", str(value)).strip()


def normalize_record(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map alternate key spellings and nested shapes onto the profile shape."""
    result = empty_record()
    extra: Dict[str, Any] = {}

    for key, value in data.items():
        target = _canonical_key(key)
        if target in ("workExperience", "education", "projects"):
            continue
        if target in result:
            result[target] = _as_text(value)
        else:
            extra[key.lower()] = value

    for key, value in data.items():
        target = _canonical_key(key)
        if target == "workExperience":
            result["workExperience"] = [WorkExperience.from_dict(e).to_dict() for e in value or [] if isinstance(e, dict)]
        elif target == "education":
            result["education"] = [Education.from_dict(e).to_dict() for e in value or [] if isinstance(e, dict)]
        elif target == "projects":
            result["projects"] = [Project.from_dict(p).to_dict() for p in value or [] if isinstance(p, dict)]

    name = _as_text(extra.get("name") or extra.get("full_name") or extra.get("fullname"))
    if name and not (result["firstName"] or result["lastName"]):
        parts = name.split()
        result["firstName"] = parts[0]
        result["lastName"] = " ".join(parts[1:])

    location = _as_text(extra.get("location"))
    if location and not (result["city"] or result["state"]):
        parts = split_location(location)
        for key, field in (("city", "city"), ("state", "state"), ("country", "country"), ("postal_code", "postalCode")):
            if parts[key] and not result[field]:
                result[field] = parts[key]

    return result


def extract(raw_text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse model output into a profile record.

    Delimiter blocks are tried first when present, then JSON. Returns None
    when neither yields a record with a name/email or a job.
    """
    if not raw_text or not raw_text.strip():
        return None

    if has_delimiters(raw_text):
        record = parse_delimited(raw_text)
        if is_valid_record(record):
            return record
        logger.info("Delimiter blocks found but not enough data; trying JSON")

    data = parse_json_text(raw_text)
    if isinstance(data, dict):
        record = normalize_record(data)
        if is_valid_record(record):
            return record

    logger.warning("Could not extract a usable record from generated text")
    return None


# ═══════════════════════════════════════════════════════════════════════════
# GENERATION-BACKED PARSING
# ═══════════════════════════════════════════════════════════════════════════

MASTER_PROMPT = """Extract ALL information from this resume and format it EXACTLY as shown below. If a field is not found, write "N/A".

BASIC INFO:
First Name:
Last Name:
Email:
Phone:
City:
State:
LinkedIn:
GitHub:
Portfolio:

SKILLS:
[List all skills as comma-separated values on one line]

SUMMARY:
[Write a 2-3 sentence professional summary]

WORK EXPERIENCE:
[For each job, use this EXACT format]
JOB_START
Company:
Title:
Location:
Start: [MM/YYYY]
End: [MM/YYYY or Present]
Description: [One sentence]
JOB_END

EDUCATION:
[For each degree, use this EXACT format]
EDU_START
Institution:
Degree:
Field:
Graduated: [MM/YYYY]
GPA:
EDU_END

PROJECTS:
[For each project, use this EXACT format]
PROJ_START
Name:
Description:
Technologies:
URL:
PROJ_END

Resume:
"""

QUESTIONS = [
    ("name", "What is the person's first and last name in this resume? Answer with just the name.", 500),
    ("email", "What is the email address in this resume? Answer with just the email.", 500),
    ("phone", "What is the phone number in this resume? Answer with just the phone.", 500),
    ("skills", "List the person's skills from this resume as comma-separated values.", None),
]

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
PHONE_RE = re.compile(r"\+?\d[\d\s().-]{7,}\d")


def _answer(session: GenerationSession, question: str, text: str) -> str:
    response = session.prompt(f"{question}\n\n{text}")
    return _clean(response or "").strip("\"'")


def parse_question_answer(session: GenerationSession, resume_text: str) -> Optional[Dict[str, Any]]:
    """One short question per field. Slower but tolerant of weak models."""
    result = empty_record()
    for key, question, limit in QUESTIONS:
        answer = _answer(session, question, resume_text[:limit] if limit else resume_text)
        if not answer:
            continue
        if key == "name":
            parts = answer.split()
            result["firstName"] = parts[0]
            result["lastName"] = " ".join(parts[1:])
        elif key == "email":
            match = EMAIL_RE.search(answer)
            result["email"] = match.group(0) if match else ""
        elif key == "phone":
            match = PHONE_RE.search(answer)
            result["phone"] = match.group(0).strip() if match else ""
        else:
            result[key] = answer
    return result if is_valid_record(result) else None


def parse_resume(session: Optional[GenerationSession], resume_text: str) -> Dict[str, Any]:
    """
    Parse resume text with the generation service.

    Master prompt first; if its output doesn't yield a record, fall back to
    question/answer. Raises ResumeParseError when both fail or no service.
    """
    if not resume_text or not resume_text.strip():
        raise ResumeParseError("Resume text is empty.")
    if session is None or session.availability() is not Availability.AVAILABLE:
        raise ResumeParseError("AI text service is not available. Please fill the form manually.")

    logger.info(f"Parsing resume ({len(resume_text)} chars) with {session.provider}")
    response = session.prompt(MASTER_PROMPT + resume_text)
    record = extract(response)
    if record is not None:
        logger.info(f"Extracted {record['firstName']} {record['lastName']}: "
                    f"{len(record['workExperience'])} jobs, {len(record['education'])} degrees, "
                    f"{len(record['projects'])} projects")
        return record

    logger.warning("Master prompt failed, trying question/answer extraction")
    record = parse_question_answer(session, resume_text)
    if record is not None:
        return record

    raise ResumeParseError(MANUAL_ENTRY_MESSAGE)


# ═══════════════════════════════════════════════════════════════════════════
# HEURISTIC PARSING (no AI)
# ═══════════════════════════════════════════════════════════════════════════

LINKEDIN_RE = re.compile(r"(?:https?://)?(?:www\.)?linkedin\.com/in/[\w-]+/?", re.I)
GITHUB_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/[\w-]+/?", re.I)
URL_RE = re.compile(r"https?://[^\s,;]+", re.I)
LOCATION_RE = re.compile(r"\b([A-Z][a-zA-Z]+(?: [A-Z][a-zA-Z]+)*, [A-Z]{2}(?: \d{5})?)\b")
NAME_LINE_RE = re.compile(r"^[A-Z][a-zA-Z'.-]+(?: [A-Z][a-zA-Z'.-]+){1,3}$")
HEADER_RE = re.compile(r"^\s*(skills|technical skills|summary|profile|about me|professional summary)\s*:?\s*(.*)$", re.I)


def _section_after(lines: List[str], names: tuple) -> str:
    for i, line in enumerate(lines):
        match = HEADER_RE.match(line)
        if match and match.group(1).lower() in names:
            inline = match.group(2).strip()
            if inline:
                return inline
            for following in lines[i + 1:]:
                if following.strip():
                    return following.strip()
    return ""


def parse_resume_regex(text: str) -> Dict[str, str]:
    """
    Heuristic parse into the legacy resumeParsed shape:
    {name, email, phone, location, linkedin, github, website, skills, summary}.
    """
    text = text or ""
    lines = [line.strip() for line in text.splitlines()]

    name = ""
    for line in lines[:5]:
        if line and NAME_LINE_RE.match(line):
            name = line
            break

    email = EMAIL_RE.search(text)
    phone = PHONE_RE.search(text)
    location = LOCATION_RE.search(text)
    linkedin = LINKEDIN_RE.search(text)
    github = GITHUB_RE.search(text)

    website = ""
    for url in URL_RE.findall(text):
        if "linkedin.com" not in url.lower() and "github.com" not in url.lower():
            website = url.rstrip(".")
            break

    return {
        "name": name,
        "email": email.group(0) if email else "",
        "phone": phone.group(0).strip() if phone else "",
        "location": location.group(1) if location else "",
        "linkedin": linkedin.group(0) if linkedin else "",
        "github": github.group(0) if github else "",
        "website": website,
        "skills": _section_after(lines, ("skills", "technical skills")),
        "summary": _section_after(lines, ("summary", "profile", "about me", "professional summary")),
    }
