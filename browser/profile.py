"""
Profile manager for job application autofill.

Handles:
- The Profile record (identity, location, EEO answers, links, history arrays)
- Loading/saving the profile JSON (camelCase keys, same shape the popup stores)
- FillData: the flat view of a profile that field rules read from
- Legacy fallback: building FillData from a parsed resume when no profile exists
"""

import json
import logging
import re
from dataclasses import dataclass, field as dataclass_field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List

from .config import PROFILE_PATH

logger = logging.getLogger(__name__)


@dataclass
class WorkExperience:
    company: str = ""
    title: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""      # or the literal "Present"
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkExperience":
        return cls(
            company=_text(data.get("company")),
            title=_text(data.get("title") or data.get("position")),
            location=_text(data.get("location")),
            start_date=_text(data.get("startDate") or data.get("start_date")),
            end_date=_text(data.get("endDate") or data.get("end_date")),
            description=_text(data.get("description")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "company": self.company,
            "title": self.title,
            "location": self.location,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "description": self.description,
        }


@dataclass
class Education:
    institution: str = ""
    degree: str = ""
    field: str = ""
    graduation_date: str = ""
    gpa: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Education":
        return cls(
            institution=_text(data.get("institution") or data.get("school")),
            degree=_text(data.get("degree")),
            field=_text(data.get("field") or data.get("major")),
            graduation_date=_text(data.get("graduationDate") or data.get("graduation_date")),
            gpa=_text(data.get("gpa")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "institution": self.institution,
            "degree": self.degree,
            "field": self.field,
            "graduationDate": self.graduation_date,
            "gpa": self.gpa,
        }


@dataclass
class Project:
    name: str = ""
    description: str = ""
    technologies: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            name=_text(data.get("name")),
            description=_text(data.get("description")),
            technologies=_text(data.get("technologies")),
            url=_text(data.get("url") or data.get("link")),
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _text(value: Any) -> str:
    """Coerce profile values to strings. Lists become comma-joined."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    return str(value).strip()


@dataclass
class Profile:
    """Structured personal record. Read-only to the fill engine."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    phone_country: str = ""

    address: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    gender: str = ""
    disability: str = ""
    veteran: str = ""
    ethnicity: str = ""

    linkedin: str = ""
    github: str = ""
    portfolio: str = ""
    twitter: str = ""

    skills: str = ""
    summary: str = ""

    work_authorization: str = "yes"
    sponsorship_required: str = "no"

    resume_pdf_base64: str = ""
    resume_pdf_name: str = ""

    work_experience: List[WorkExperience] = dataclass_field(default_factory=list)
    education: List[Education] = dataclass_field(default_factory=list)
    projects: List[Project] = dataclass_field(default_factory=list)

    # camelCase storage key -> attribute
    SCALAR_KEYS = {
        "firstName": "first_name", "lastName": "last_name", "email": "email",
        "phone": "phone", "phoneCountry": "phone_country",
        "address": "address", "city": "city", "state": "state",
        "postalCode": "postal_code", "country": "country",
        "gender": "gender", "disability": "disability", "veteran": "veteran",
        "ethnicity": "ethnicity",
        "linkedin": "linkedin", "github": "github", "portfolio": "portfolio",
        "twitter": "twitter",
        "skills": "skills", "summary": "summary",
        "workAuthorization": "work_authorization",
        "sponsorshipRequired": "sponsorship_required",
        "resumePdfBase64": "resume_pdf_base64", "resumePdfName": "resume_pdf_name",
    }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Profile":
        data = data or {}
        kwargs = {}
        for key, attr in cls.SCALAR_KEYS.items():
            value = data.get(key, data.get(attr))
            if value is not None and value != "":
                kwargs[attr] = _text(value)

        kwargs["work_experience"] = [
            WorkExperience.from_dict(e) for e in data.get("workExperience") or data.get("work_experience") or []
            if isinstance(e, dict)
        ]
        kwargs["education"] = [
            Education.from_dict(e) for e in data.get("education") or [] if isinstance(e, dict)
        ]
        kwargs["projects"] = [
            Project.from_dict(p) for p in data.get("projects") or [] if isinstance(p, dict)
        ]
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = {key: getattr(self, attr) for key, attr in self.SCALAR_KEYS.items()}
        result["workExperience"] = [e.to_dict() for e in self.work_experience]
        result["education"] = [e.to_dict() for e in self.education]
        result["projects"] = [p.to_dict() for p in self.projects]
        return result

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def location(self) -> str:
        """'City, State' with whichever parts exist."""
        return ", ".join(p for p in (self.city, self.state) if p)

    def summary_text(self) -> str:
        """Compact text used as generation context."""
        lines = [
            f"Name: {self.full_name}",
            f"Email: {self.email}",
            f"Location: {self.location or self.country}",
        ]
        if self.skills:
            lines.append(f"Skills: {self.skills}")
        if self.summary:
            lines.append(f"Summary: {self.summary}")
        for job in self.work_experience[:3]:
            lines.append(f"Experience: {job.title} at {job.company} ({job.start_date} - {job.end_date})")
        for edu in self.education[:2]:
            lines.append(f"Education: {edu.degree} {edu.field} at {edu.institution}")
        return "\n".join(lines)


# ═══════════════════════════════════════════════════════════════════════════
# FILL DATA - flat view consumed by the field classifier
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FillData:
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    phone_country: str = ""

    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    location: str = ""

    gender: str = ""
    disability: str = ""
    veteran: str = ""
    ethnicity: str = ""

    linkedin: str = ""
    github: str = ""
    website: str = ""
    twitter: str = ""

    skills: str = ""
    summary: str = ""

    current_company: str = ""
    current_title: str = ""
    years_of_experience: str = ""

    degree: str = ""
    university: str = ""
    field_of_study: str = ""
    graduation_year: str = ""
    gpa: str = ""

    work_authorization: str = "yes"
    sponsorship_required: str = "no"

    cover_letter: str = ""
    context_text: str = ""

    @classmethod
    def from_profile(cls, profile: Profile, cover_letter: str = "") -> "FillData":
        first_job = profile.work_experience[0] if profile.work_experience else WorkExperience()
        first_edu = profile.education[0] if profile.education else Education()
        return cls(
            first_name=profile.first_name,
            last_name=profile.last_name,
            full_name=profile.full_name,
            email=profile.email,
            phone=profile.phone,
            phone_country=profile.phone_country,
            address=profile.address,
            city=profile.city,
            state=profile.state,
            country=profile.country,
            postal_code=profile.postal_code,
            location=profile.location,
            gender=profile.gender,
            disability=profile.disability,
            veteran=profile.veteran,
            ethnicity=profile.ethnicity,
            linkedin=profile.linkedin,
            github=profile.github,
            website=profile.portfolio,
            twitter=profile.twitter,
            skills=profile.skills,
            summary=profile.summary,
            current_company=first_job.company,
            current_title=first_job.title,
            years_of_experience=str(len(profile.work_experience)) if profile.work_experience else "",
            degree=first_edu.degree,
            university=first_edu.institution,
            field_of_study=first_edu.field,
            graduation_year=first_edu.graduation_date,
            gpa=first_edu.gpa,
            work_authorization=profile.work_authorization or "yes",
            sponsorship_required=profile.sponsorship_required or "no",
            cover_letter=cover_letter or "",
            context_text=profile.summary_text(),
        )


# Degree level patterns, most advanced first
DEGREE_PATTERNS = [
    (re.compile(r"(?:PhD|Ph\.?D\.?|Doctorate|Doctoral)", re.I), "Doctorate"),
    (re.compile(r"(?:Master|M\.S\.|M\.A\.|MBA|M\.?Tech)", re.I), "Master's Degree"),
    (re.compile(r"(?:Bachelor|B\.S\.|B\.A\.|B\.?Tech|B\.E\.)", re.I), "Bachelor's Degree"),
    (re.compile(r"(?:Associate|A\.S\.|A\.A\.)", re.I), "Associate Degree"),
]


def split_location(location: str) -> Dict[str, str]:
    """
    'Austin, TX' -> city Austin, state TX, country United States.
    A two-letter second part is read as a US state.
    """
    result = {"city": "", "state": "", "country": "", "postal_code": ""}
    if not location:
        return result

    parts = [p.strip() for p in location.split(",") if p.strip()]
    if len(parts) == 1:
        if len(parts[0]) == 2:
            result["state"] = parts[0]
            result["country"] = "United States"
        else:
            result["city"] = parts[0]
    elif len(parts) == 2:
        result["city"] = parts[0]
        if len(parts[1]) == 2:
            result["state"] = parts[1]
            result["country"] = "United States"
        else:
            result["country"] = parts[1]
    elif len(parts) >= 3:
        result["city"] = parts[0]
        result["state"] = parts[1]
        result["country"] = parts[-1]

    zip_match = re.search(r"\b\d{5}(?:-\d{4})?\b", location)
    if zip_match:
        result["postal_code"] = zip_match.group(0)
    return result


def profile_from_resume(resume_parsed: Optional[Dict[str, Any]], resume_text: str = "",
                        cover_letter: str = "") -> FillData:
    """Legacy path: derive fill data from a heuristically parsed resume."""
    parsed = resume_parsed or {}
    text = resume_text or ""

    name = _text(parsed.get("name"))
    name_parts = name.split()
    skills = parsed.get("skills") or ""

    data = FillData(
        full_name=name,
        first_name=name_parts[0] if name_parts else "",
        last_name=" ".join(name_parts[1:]),
        email=_text(parsed.get("email")),
        phone=_text(parsed.get("phone")),
        location=_text(parsed.get("location")),
        linkedin=_text(parsed.get("linkedin")),
        github=_text(parsed.get("github")),
        website=_text(parsed.get("website")),
        skills=_text(skills),
        summary=_text(parsed.get("summary")),
        cover_letter=cover_letter or "",
        context_text=text[:2000],
    )

    parts = split_location(data.location)
    data.city, data.state, data.country, data.postal_code = (
        parts["city"], parts["state"], parts["country"], parts["postal_code"])

    for pattern, degree in DEGREE_PATTERNS:
        if pattern.search(text):
            data.degree = degree
            break

    uni = re.search(r"(?:University of|College of|Institute of)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*)", text)
    if uni:
        data.university = uni.group(0).strip()

    grad = re.search(r"(?:Graduated|Graduation|Class of|')\s*(\d{4})", text, re.I)
    if grad:
        data.graduation_year = grad.group(1)

    years = re.search(r"(\d+)\+?\s*(?:years?|yrs?)(?:\s*of)?\s*(?:experience|exp)", text, re.I)
    if years:
        data.years_of_experience = years.group(1)
    else:
        all_years = [int(y) for y in re.findall(r"20\d{2}", text)]
        if len(all_years) >= 2:
            data.years_of_experience = str(max(all_years) - min(all_years))

    company = re.search(r"(?:\bat|@)\s+([A-Z][a-zA-Z &.]+?(?:Inc|LLC|Corp|Ltd|Co|Company)?)\s*(?:\||•|,|\n|$)", text)
    if company:
        data.current_company = company.group(1).strip()

    title = re.search(
        r"^([A-Z][a-zA-Z ]+(?:Engineer|Developer|Designer|Manager|Analyst|Consultant|Architect|Lead|Director|Specialist))",
        text, re.M)
    if title:
        data.current_title = title.group(1).strip()

    return data


class ProfileManager:
    """Loads and saves the profile JSON."""

    def __init__(self, profile_path: Optional[Path] = None):
        self.profile_path = Path(profile_path or PROFILE_PATH)
        self.data: Dict[str, Any] = {}
        self._load_profile()

    def _load_profile(self):
        if self.profile_path.exists():
            with open(self.profile_path, encoding="utf-8") as f:
                self.data = json.load(f)
            logger.info(f"Loaded profile from {self.profile_path}")
        else:
            logger.info(f"No profile at {self.profile_path}")

    @property
    def profile(self) -> Profile:
        return Profile.from_dict(self.data)

    def save_profile(self, profile: Optional[Profile] = None):
        if profile is not None:
            self.data = profile.to_dict()
        self.profile_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.profile_path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2, ensure_ascii=False)


_profile_manager: Optional[ProfileManager] = None


def get_profile_manager() -> ProfileManager:
    global _profile_manager
    if _profile_manager is None:
        _profile_manager = ProfileManager()
    return _profile_manager
