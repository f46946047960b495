"""
Job posting text extraction.

Tries known description containers for the big job boards first, then the
longest reasonably sized text block, then the page body.
"""

import logging
from typing import Iterable, Optional

from playwright.sync_api import Page, Error as PlaywrightError

logger = logging.getLogger(__name__)

JOB_TEXT_SELECTORS = [
    # LinkedIn
    "div.description__text",
    "div.show-more-less-html__markup",
    ".jobs-description__content",
    ".jobs-description",
    ".job-details",
    # Indeed
    "#jobDescriptionText",
    ".jobsearch-JobComponent-description",
    ".jobsearch-jobDescriptionText",
    # Workday
    '[data-automation-id="jobPostingDescription"]',
    ".jobDescription",
    # Greenhouse
    "#app_body",
    ".job-post-description",
    # Lever
    ".posting-description",
    ".content-description",
    # Generic
    '[class*="job-description"]',
    '[id*="job-description"]',
    '[class*="jobDescription"]',
    '[id*="jobDescription"]',
    "article",
    '[role="article"]',
    ".post",
    ".content",
    "main",
]

MIN_SELECTOR_TEXT = 120
MIN_BLOCK_TEXT = 200
MAX_BLOCK_TEXT = 10000
MAX_BODY_TEXT = 5000

BLOCK_TEXTS_SCRIPT = """
() => Array.from(document.querySelectorAll('div, section, article'))
    .map(el => (el.innerText || '').trim())
"""

BODY_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"


def pick_longest_block(texts: Iterable[str]) -> Optional[str]:
    """Longest block strictly between MIN_BLOCK_TEXT and MAX_BLOCK_TEXT chars."""
    sized = [t.strip() for t in texts if t and MIN_BLOCK_TEXT < len(t.strip()) < MAX_BLOCK_TEXT]
    if not sized:
        return None
    return max(sized, key=len)


def extract_job_text(page: Page) -> str:
    """Main job description text of the current page, or '' if none."""
    for selector in JOB_TEXT_SELECTORS:
        try:
            el = page.query_selector(selector)
            text = (el.inner_text() or "").strip() if el else ""
        except PlaywrightError as e:
            logger.debug(f"Selector {selector} failed: {e}")
            continue
        if len(text) > MIN_SELECTOR_TEXT:
            logger.info(f"Job description found via {selector}")
            return text

    try:
        block = pick_longest_block(page.evaluate(BLOCK_TEXTS_SCRIPT) or [])
        if block:
            logger.info("Job description found via longest text block")
            return block

        body = (page.evaluate(BODY_TEXT_SCRIPT) or "").strip()
    except PlaywrightError as e:
        logger.warning(f"Job text extraction failed: {e}")
        return ""

    if len(body) > MIN_SELECTOR_TEXT:
        logger.info("Using body text as job description")
        return body[:MAX_BODY_TEXT]
    return ""
