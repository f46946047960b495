"""
Synonym sets for dropdown matching.

Each builder returns an ordered candidate list (first = preferred) that the
Dropdown Matcher walks until some option hits.
"""

from typing import Iterable, List, Optional


PREFER_NOT_TO_ANSWER = ["Prefer not to say", "I don't wish to answer", "Decline to self identify"]

WORK_AUTHORIZED = ["Yes", "yes", "true", "Authorized", "authorized to work"]
SPONSORSHIP_NOT_REQUIRED = ["No", "no", "false", "Do not require"]
EMPLOYMENT_TYPES = ["Full-time", "Full time", "Permanent", "FTE"]
AVAILABILITY = ["Immediate", "Immediately", "ASAP", "2 weeks", "Two weeks"]
SALARY = ["Negotiable", "Market rate", "Competitive"]
DEFAULT_DEGREES = ["Bachelor's Degree", "Bachelor's", "High School"]

# Default when neither phone country nor country says otherwise
DEFAULT_PHONE_COUNTRY = "UK"

PHONE_CODES = {
    "UK": ["+44", "44", "UK", "United Kingdom", "GB", "GBR"],
    "US": ["+1", "1", "US", "United States", "USA"],
    "CA": ["+1", "1", "CA", "Canada"],
    "IN": ["+91", "91", "IN", "India", "IND"],
    "AU": ["+61", "61", "AU", "Australia", "AUS"],
    "DE": ["+49", "49", "DE", "Germany", "DEU"],
    "FR": ["+33", "33", "FR", "France", "FRA"],
    "NL": ["+31", "31", "NL", "Netherlands", "NLD"],
    "ES": ["+34", "34", "ES", "Spain", "ESP"],
    "IT": ["+39", "39", "IT", "Italy", "ITA"],
    "IE": ["+353", "353", "IE", "Ireland", "IRL"],
    "SG": ["+65", "65", "SG", "Singapore", "SGP"],
    "NZ": ["+64", "64", "NZ", "New Zealand", "NZL"],
}

# (code, names matched by substring, variants)
COUNTRIES = [
    ("US", ["united states", "usa"],
     ["United States", "US", "USA", "United States of America", "America", "U.S.", "U.S.A."]),
    ("UK", ["united kingdom", "great britain", "england", "scotland", "wales"],
     ["United Kingdom", "UK", "GB", "Great Britain", "U.K.", "Britain"]),
    ("CA", ["canada"], ["Canada", "CA", "CAN"]),
    ("IN", ["india"], ["India", "IN", "IND"]),
    ("DE", ["germany", "deutschland"], ["Germany", "DE", "DEU", "Deutschland"]),
    ("FR", ["france"], ["France", "FR", "FRA"]),
    ("AU", ["australia"], ["Australia", "AU", "AUS"]),
]

# Two-letter aliases that map onto a COUNTRIES code
COUNTRY_CODE_ALIASES = {"us": "US", "u.s.": "US", "u.s.a.": "US", "gb": "UK", "uk": "UK",
                        "u.k.": "UK", "ca": "CA", "in": "IN", "de": "DE", "fr": "FR", "au": "AU"}


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    result = []
    for v in values:
        if not v:
            continue
        v = str(v).strip()
        if v and v not in seen:
            seen.add(v)
            result.append(v)
    return result


def country_code(country: str) -> Optional[str]:
    """Map a free-form country name to one of the known codes."""
    lower = (country or "").strip().lower()
    if not lower:
        return None
    if lower in COUNTRY_CODE_ALIASES:
        return COUNTRY_CODE_ALIASES[lower]
    for code, names, _ in COUNTRIES:
        if any(name in lower for name in names):
            return code
    return None


def country_variants(country: str) -> List[str]:
    """The profile's own spelling first, then every known alias."""
    if not country:
        return []
    code = country_code(country)
    variants = [country]
    for known_code, _, names in COUNTRIES:
        if known_code == code:
            variants.extend(names)
    return _unique(variants)


def phone_country_codes(phone_country: str = "", country: str = "") -> List[str]:
    """
    Dial-code candidates. An explicit phone country wins, then the code is
    inferred from the residence country, then the fixed default applies.
    """
    explicit = (phone_country or "").strip().upper()
    if explicit == "GB":
        explicit = "UK"
    if explicit in PHONE_CODES:
        return list(PHONE_CODES[explicit])

    inferred = country_code(country)
    if inferred in PHONE_CODES:
        return list(PHONE_CODES[inferred])

    return list(PHONE_CODES[DEFAULT_PHONE_COUNTRY])


def degree_variants(degree: str) -> List[str]:
    if not degree:
        return list(DEFAULT_DEGREES)

    variants = [degree]
    base = degree
    for suffix in ("'s Degree", " Degree"):
        if base.lower().endswith(suffix.lower()):
            base = base[: -len(suffix)]
    variants.append(base.strip())

    if "'s" not in degree and not degree.endswith("s"):
        variants.extend([degree + "'s", degree + "'s Degree"])
    if "degree" not in degree.lower():
        variants.append(degree + " Degree")

    first_word = degree.split()[0] if degree.split() else ""
    if len(first_word) > 3:
        variants.extend([first_word, first_word + "'s", first_word + "'s Degree"])

    lower = degree.lower()
    if "bachelor" in lower:
        variants.extend(["Bachelor's", "Bachelor's Degree", "Bachelors", "Bachelor",
                         "BS", "B.S.", "B.A.", "BA", "Undergraduate"])
    elif "master" in lower:
        variants.extend(["Master's", "Master's Degree", "Masters", "Master",
                         "MS", "M.S.", "M.A.", "MA", "Graduate"])
    elif "doctor" in lower or "phd" in lower:
        variants.extend(["Doctorate", "PhD", "Ph.D.", "Doctoral", "Doctoral Degree"])
    elif "associate" in lower:
        variants.extend(["Associate's", "Associate", "Associates", "AS", "A.S.", "AA", "A.A."])
    elif "high school" in lower or "diploma" in lower:
        variants.extend(["High School", "High School Diploma", "HS Diploma", "Secondary"])

    return _unique(variants)


def years_variants(years) -> List[str]:
    """'5' -> ['5', '5+', '5 years', '5-7']"""
    text = str(years).strip()
    if not text:
        return []
    variants = [text, f"{text}+", f"{text} years"]
    if text.isdigit():
        variants.append(f"{text}-{int(text) + 2}")
    return variants


def location_variants(location: str, city: str = "", state: str = "") -> List[str]:
    parts = [p.strip() for p in (location or "").split(",")]
    return _unique([location, *parts, city, state])


def gender_variants(gender: str) -> List[str]:
    if not gender:
        return ["Prefer not to say", "Decline to self identify"]

    variants = [gender, gender.capitalize(), gender.lower(), gender.upper()]
    lower = gender.lower()
    if "female" in lower:
        variants.extend(["Female", "female", "FEMALE", "F", "f"])
    elif "male" in lower:
        variants.extend(["Male", "male", "MALE", "M", "m"])
    elif "non-binary" in lower or "nonbinary" in lower:
        variants.extend(["Non-binary", "Nonbinary", "non-binary", "nonbinary", "Other", "other"])
    elif "prefer" in lower:
        variants.extend(["Prefer not to say", "Prefer not to answer", "Decline to self identify"])
    return _unique(variants)


def disability_variants(disability: str) -> List[str]:
    if not disability:
        return ["I don't wish to answer", "Prefer not to say", "Decline to self identify"]

    variants = [disability]
    lower = disability.lower()
    if "prefer" in lower:
        variants.extend(["I don't wish to answer", "Prefer not to say", "Decline to self identify"])
    elif "no" in lower.split() or "not" in lower:
        variants.extend(["No", "No, I do not have a disability", "I do not have a disability", "None"])
    elif "yes" in lower:
        variants.extend(["Yes", "Yes, I have a disability", "I have a disability"])
    return _unique(variants)


def veteran_variants(veteran: str) -> List[str]:
    if not veteran:
        return ["I am not a protected veteran", "I don't wish to answer", "No", "Not a veteran"]

    variants = [veteran]
    lower = veteran.lower()
    if "prefer" in lower:
        variants.extend(["I don't wish to answer", "Prefer not to say", "Decline to self identify"])
    elif "no" in lower.split() or "not" in lower:
        variants.extend(["I am not a protected veteran", "No", "Not a veteran", "I am not a veteran"])
    elif "yes" in lower:
        variants.extend(["I am a protected veteran", "Yes", "Protected veteran"])
    return _unique(variants)


def ethnicity_variants(ethnicity: str) -> List[str]:
    if not ethnicity:
        return list(PREFER_NOT_TO_ANSWER)
    variants = [ethnicity]
    if "prefer" in ethnicity.lower():
        variants.extend(PREFER_NOT_TO_ANSWER)
    return _unique(variants)
