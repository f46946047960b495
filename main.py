# main.py - HTTP surface for the autofill engine

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from browser.browser_manager import BrowserConfig, BrowserManager, BrowserMode
from browser.engine import AutofillEngine
from browser.form_logger import FormLogger
from browser.job_text import extract_job_text
from browser.profile import Profile, get_profile_manager
from parsers.resume_extractor import ResumeParseError, extract, parse_resume, parse_resume_regex
from utils.generation import create_session

# Environment: PROD or DEV
ENV = os.getenv("AUTOFILL_ENV", "PROD")

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Job Autofill",
    description="Fills job application forms from a structured profile",
    version="0.4.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _browser(headless: bool = True) -> BrowserManager:
    return BrowserManager(BrowserConfig(mode=BrowserMode.FRESH, headless=headless))


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/env")
def get_env():
    """Return current environment (PROD/DEV)"""
    return {"env": ENV}


# -----------------------------
# Profile store
# -----------------------------

@app.get("/profile")
def get_profile():
    return get_profile_manager().profile.to_dict()


@app.put("/profile")
def put_profile(payload: dict[str, Any]):
    """Replace the stored profile. Unknown keys are dropped."""
    manager = get_profile_manager()
    profile = Profile.from_dict(payload)
    manager.save_profile(profile)
    return {"status": "ok", "profile": profile.to_dict()}


# -----------------------------
# Autofill
# -----------------------------

class AutofillRequest(BaseModel):
    url: str
    profile: Optional[dict[str, Any]] = None
    resumeText: str = ""
    resumeParsed: Optional[dict[str, Any]] = None
    coverLetter: str = ""
    jobDescription: str = ""
    headless: bool = True
    provider: Optional[str] = None


@app.post("/autofill")
def autofill(req: AutofillRequest):
    """
    Open the form and fill it.
    Without a profile in the body the stored profile is used.
    Returns {status, filled, filledCount, fields} or {status: "error", error}.
    """
    profile = req.profile
    if profile is None and not (req.resumeText or req.resumeParsed):
        profile = get_profile_manager().data or None

    payload = {
        "profile": profile,
        "resumeText": req.resumeText,
        "resumeParsed": req.resumeParsed,
        "coverLetter": req.coverLetter,
        "jobDescription": req.jobDescription,
    }

    session = create_session(req.provider)
    try:
        with _browser(req.headless) as browser:
            if not browser.goto(req.url):
                return {"status": "error", "error": "Failed to open page"}
            if not payload["jobDescription"]:
                payload["jobDescription"] = extract_job_text(browser.page)
            engine = AutofillEngine(browser.page, session=session, form_logger=FormLogger())
            return engine.run(payload).to_dict()
    finally:
        session.destroy()


class JobTextRequest(BaseModel):
    url: str


@app.post("/job_text")
def job_text(req: JobTextRequest):
    with _browser() as browser:
        if not browser.goto(req.url):
            raise HTTPException(status_code=502, detail="Failed to open page")
        text = extract_job_text(browser.page)
    return {"text": text, "length": len(text)}


# -----------------------------
# Resume parsing
# -----------------------------

class ResumeParseRequest(BaseModel):
    resumeText: str
    provider: Optional[str] = None


@app.post("/resume/parse")
def resume_parse(req: ResumeParseRequest):
    """
    Parse resume text into a profile record with the generation service.
    422 with a manual-entry message when every strategy fails.
    """
    session = create_session(req.provider)
    try:
        record = parse_resume(session, req.resumeText)
    except ResumeParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    finally:
        session.destroy()
    return {"status": "ok", "profile": record}


class ResumeExtractRequest(BaseModel):
    text: str


@app.post("/resume/extract")
def resume_extract(req: ResumeExtractRequest):
    """Extract a profile record from already generated text (no AI call)."""
    record = extract(req.text)
    if record is None:
        raise HTTPException(status_code=422, detail="Could not extract a profile from the text")
    return {"status": "ok", "profile": record}


@app.post("/resume/heuristic")
def resume_heuristic(req: ResumeExtractRequest):
    """Regex-only parse of raw resume text into the legacy resumeParsed shape."""
    return {"status": "ok", "resumeParsed": parse_resume_regex(req.text)}


# -----------------------------
# Fill logs
# -----------------------------

@app.get("/logs")
def logs(limit: int = 10):
    form_logger = FormLogger()
    return {"summary": form_logger.get_log_summary(), "logs": form_logger.get_recent_logs(limit)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
