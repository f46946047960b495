"""
Generative text service sessions.

One session object owns one provider connection (local Ollama over HTTP, or
Claude via the anthropic SDK). Callers create it, pass it into the fill
engine / resume extractor, and call destroy() when done. Nothing here is
module-global state.

generate() and generate_field_content() tolerate a missing or unavailable
session by returning None; a field that gets None stays blank.
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional

import anthropic
import requests

from browser.config import AI_CONFIG

logger = logging.getLogger(__name__)


class Availability(Enum):
    AVAILABLE = "available"
    DOWNLOADABLE = "downloadable"
    UNAVAILABLE = "unavailable"


class GenerationSession:
    """Base session. Subclasses implement _complete() and availability()."""

    provider = "none"

    def __init__(self, temperature: float = AI_CONFIG["temperature"],
                 timeout: int = AI_CONFIG["request_timeout"]):
        self.temperature = temperature
        self.timeout = timeout
        self.history: List[Dict[str, str]] = []
        self.destroyed = False

    def availability(self) -> Availability:
        return Availability.UNAVAILABLE

    def prompt(self, text: str, system: Optional[str] = None) -> Optional[str]:
        """Single request/response completion. None on any failure."""
        if self.destroyed:
            logger.warning(f"{self.provider} session used after destroy()")
            return None
        response = self._complete(text, system)
        if response:
            self.history.append({"prompt": text, "response": response})
        return response

    def _complete(self, text: str, system: Optional[str]) -> Optional[str]:
        return None

    def reset(self):
        self.history.clear()

    def destroy(self):
        self.reset()
        self.destroyed = True


class OllamaSession(GenerationSession):
    """Local model served by Ollama."""

    provider = "ollama"

    def __init__(self, model: str = AI_CONFIG["ollama_model"], url: str = AI_CONFIG["ollama_url"], **kwargs):
        super().__init__(**kwargs)
        self.model = model
        self.url = url.rstrip("/")

    def availability(self) -> Availability:
        """Model listed -> available; server up without the model -> downloadable."""
        try:
            resp = requests.get(f"{self.url}/api/tags", timeout=3)
        except requests.RequestException as e:
            logger.debug(f"Ollama not reachable at {self.url}: {e}")
            return Availability.UNAVAILABLE
        if not resp.ok:
            return Availability.UNAVAILABLE

        models = [m.get("name", "") for m in resp.json().get("models", [])]
        base = self.model.split(":")[0]
        if any(name == self.model or name.split(":")[0] == base for name in models):
            return Availability.AVAILABLE
        return Availability.DOWNLOADABLE

    def _complete(self, text: str, system: Optional[str]) -> Optional[str]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": text,
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if system:
            payload["system"] = system

        try:
            resp = requests.post(f"{self.url}/api/generate", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Ollama connection error: {e}")
            return None

        if resp.status_code != 200:
            logger.warning(f"Ollama error: {resp.status_code}")
            return None
        return resp.json().get("response", "").strip() or None


class ClaudeSession(GenerationSession):
    """Claude via the Anthropic API."""

    provider = "claude"

    def __init__(self, model: str = AI_CONFIG["claude_model"], api_key: Optional[str] = None,
                 max_tokens: int = 2048, **kwargs):
        super().__init__(**kwargs)
        self.model = model
        self.api_key = api_key if api_key is not None else AI_CONFIG["anthropic_api_key"]
        self.max_tokens = max_tokens
        self._client: Optional[anthropic.Anthropic] = None

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def availability(self) -> Availability:
        return Availability.AVAILABLE if self.api_key else Availability.UNAVAILABLE

    def _complete(self, text: str, system: Optional[str]) -> Optional[str]:
        if not self.api_key:
            return None

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": text}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.warning(f"Claude API error: {e}")
            return None

        parts = [block.text for block in response.content if getattr(block, "type", "text") == "text"]
        return "".join(parts).strip() or None

    def destroy(self):
        super().destroy()
        self._client = None


def create_session(provider: Optional[str] = None) -> GenerationSession:
    """Session for the configured provider (AUTOFILL_AI_PROVIDER)."""
    provider = (provider or AI_CONFIG["provider"]).lower()
    if provider == "claude":
        return ClaudeSession()
    if provider == "ollama":
        return OllamaSession()
    logger.info(f"Unknown AI provider '{provider}', generation disabled")
    return GenerationSession()


def generate(session: Optional[GenerationSession], prompt: str, system: Optional[str] = None) -> Optional[str]:
    """generate(promptContext) -> text | None. Missing or unavailable service -> None."""
    if session is None:
        return None
    if session.availability() is not Availability.AVAILABLE:
        logger.debug(f"Generation skipped: {session.provider} not available")
        return None
    return session.prompt(prompt, system)


FIELD_SYSTEM_PROMPT = (
    "You fill in job application forms for an applicant. Answer with the value "
    "for the field only: no quotes, no labels, no explanation."
)

RESPONSE_PREFIX_RE = re.compile(r"^\s*(response|answer|value)\s*:\s*", re.I)


def clean_generated(text: str, max_length: Optional[int] = None) -> str:
    """Strip wrapping quotes and 'Response:' prefixes; cut to max_length."""
    text = RESPONSE_PREFIX_RE.sub("", text.strip())
    text = text.strip().strip("\"'").strip()
    if max_length and max_length > 0 and len(text) > max_length:
        text = text[:max_length]
    return text


def generate_field_content(
    session: Optional[GenerationSession],
    field_info: Dict[str, Any],
    profile_context: str = "",
    job_description: str = "",
) -> Optional[str]:
    """
    Ask the service for one field's value.

    field_info carries label, name, placeholder, type and maxLength (the
    FieldContext of the control). Returns None when nothing usable comes back.
    """
    label = field_info.get("label") or field_info.get("name") or field_info.get("placeholder") or ""
    if not label.strip():
        return None

    lines = [f"Form field: {label}"]
    for key in ("name", "placeholder", "type"):
        if field_info.get(key):
            lines.append(f"Field {key}: {field_info[key]}")
    if field_info.get("section"):
        lines.append(f"Section: {field_info['section']}")
    if profile_context:
        lines.append(f"\nApplicant profile:\n{profile_context[:2000]}")
    if job_description:
        lines.append(f"\nJob description:\n{job_description[:1500]}")
    lines.append("\nIf the profile does not contain the answer, reply with NONE.")
    lines.append("Value:")

    response = generate(session, "\n".join(lines), FIELD_SYSTEM_PROMPT)
    if not response:
        return None

    value = clean_generated(response, field_info.get("maxLength"))
    if not value or value.upper() in ("NONE", "N/A", "NULL"):
        return None
    return value
