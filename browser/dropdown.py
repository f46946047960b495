"""
Dropdown Matcher - picks the <option> for an ordered list of acceptable values.
"""

import logging
from typing import Callable, Iterable, List, Optional

from .signals import Option

logger = logging.getLogger(__name__)

# Substring strategies ignore strings shorter than this ("1", "m")
MIN_FRAGMENT = 2


def _fragment(s: str) -> bool:
    return len(s) >= MIN_FRAGMENT


def _strategies(cand: str) -> List[Callable[[str, str], bool]]:
    """
    Fixed cascade, most to least specific. Each takes (value, text) of one
    option, both already lowercased and trimmed.
    """
    return [
        lambda v, t: v == cand,                                   # 1 exact value
        lambda v, t: t == cand,                                   # 2 exact text
        lambda v, t: _fragment(v) and cand.startswith(v),         # 3 value is a prefix of the candidate
        lambda v, t: _fragment(t) and cand.startswith(t),         # 4 text is a prefix
        lambda v, t: _fragment(v) and v in cand,                  # 5 value inside the candidate
        lambda v, t: _fragment(t) and t in cand,                  # 6 text inside the candidate
        lambda v, t: _fragment(cand) and cand in v,               # 7 candidate inside the value (codes)
        lambda v, t: len(cand) > 2 and cand in t,                 # 8 candidate inside the text
    ]


def match_option(options: List[Option], candidates: Iterable[str]) -> Optional[Option]:
    """
    Find the option for the first candidate that matches anything.

    Candidates are tried in order (first = preferred). For each candidate the
    cascade runs strategy by strategy over all options, so an exact hit on a
    later option beats a prefix hit on an earlier one. Once a candidate hits,
    later candidates are not tried. A select with at most one option (just a
    placeholder) never matches. Returns None rather than guessing.
    """
    if len(options) <= 1:
        return None

    normalized = [
        (opt, (opt.value or "").strip().lower(), (opt.text or "").strip().lower())
        for opt in options
    ]

    for candidate in candidates:
        cand = (candidate or "").strip().lower()
        if not cand:
            continue
        for number, strategy in enumerate(_strategies(cand), start=1):
            for opt, value, text in normalized:
                if not value and not text:
                    continue
                if strategy(value, text):
                    logger.debug(f"Option '{opt.text}' matched '{candidate}' (strategy {number})")
                    return opt

    return None
