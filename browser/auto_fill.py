#!/usr/bin/env python3
"""
Auto-fill a job application form from the command line.

    python browser/auto_fill.py https://boards.greenhouse.io/acme/jobs/123
    python browser/auto_fill.py URL --profile my_profile.json --cover-letter letter.txt --visible

Prints the fill report as JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from browser.browser_manager import BrowserConfig, BrowserManager, BrowserMode
from browser.config import PROFILE_PATH
from browser.engine import AutofillEngine
from browser.form_logger import FormLogger
from browser.job_text import extract_job_text
from browser.profile import ProfileManager
from utils.generation import create_session

logger = logging.getLogger(__name__)


def auto_fill(url: str, profile_path: Path = PROFILE_PATH, cover_letter: str = "",
              mode: BrowserMode = BrowserMode.FRESH, headless: bool = True,
              provider: str = None, screenshot: Path = None) -> dict:
    """Open url, fill it, return the report dict. No user interaction."""
    manager = ProfileManager(profile_path)
    if not manager.data:
        return {"status": "error", "error": f"Profile not found: {profile_path}"}

    session = create_session(provider)
    try:
        with BrowserManager(BrowserConfig(mode=mode, headless=headless)) as browser:
            if not browser.goto(url):
                return {"status": "error", "error": "Failed to open page"}
            payload = {
                "profile": manager.data,
                "coverLetter": cover_letter,
                "jobDescription": extract_job_text(browser.page),
            }
            engine = AutofillEngine(browser.page, session=session, form_logger=FormLogger())
            report = engine.run(payload).to_dict()
            if screenshot:
                logger.info(f"Screenshot saved: {browser.screenshot(str(screenshot), full_page=True)}")
            return report
    finally:
        session.destroy()


def main():
    parser = argparse.ArgumentParser(description="Fill a job application form from your profile")
    parser.add_argument("url", help="Application form URL")
    parser.add_argument("--profile", type=Path, default=PROFILE_PATH, help="Profile JSON path")
    parser.add_argument("--cover-letter", type=Path, help="Text file with the cover letter")
    parser.add_argument("--mode", choices=[m.value for m in BrowserMode], default=BrowserMode.FRESH.value,
                        help="Browser connection mode")
    parser.add_argument("--visible", action="store_true", help="Show the browser window")
    parser.add_argument("--ai", choices=["ollama", "claude", "none"], help="Generation provider")
    parser.add_argument("--screenshot", type=Path, help="Save a full-page screenshot after filling")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cover_letter = args.cover_letter.read_text(encoding="utf-8") if args.cover_letter else ""
    result = auto_fill(
        args.url,
        profile_path=args.profile,
        cover_letter=cover_letter,
        mode=BrowserMode(args.mode),
        headless=not args.visible,
        provider=args.ai,
        screenshot=args.screenshot,
    )
    print(json.dumps(result, indent=2))
    return 0 if result.get("status") == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())
