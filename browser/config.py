# Autofill engine configuration

import os
from pathlib import Path

from dotenv import load_dotenv

# Directories
BROWSER_DIR = Path(__file__).parent
PROJECT_ROOT = BROWSER_DIR.parent
LOGS_DIR = PROJECT_ROOT / "logs" / "form_fills"
PROFILE_PATH = BROWSER_DIR / "profile.json"

load_dotenv(PROJECT_ROOT / ".env")

# Timeouts (seconds)
PAGE_LOAD_TIMEOUT = 60
SETTLE_DELAY = 0.5          # let late-rendering frameworks finish before the scan
WRITE_RETRY_DELAY = 0.2     # single retry after an unverified write
ADD_CLICK_DELAY = 0.3
NEW_FIELDS_TIMEOUT = 2.0    # how long to wait for an Add click to render fields
POLL_INTERVAL = 0.2
VALIDATION_PASSES = 3

# Browser settings
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"

BROWSER_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-sandbox',
    '--disable-dev-shm-usage',
]

# Selectors
FIELD_SELECTOR = "input, textarea, select"
HEADING_SELECTOR = 'h1, h2, h3, h4, h5, h6, .heading, .section-title, .title, [role="heading"]'
CLICKABLE_SELECTOR = 'button, a, [role="button"]'
FILE_INPUT_SELECTOR = 'input[type="file"]'

# Validity classes swapped after each write
ERROR_CLASSES = [
    "error", "invalid", "is-invalid", "has-error", "field-error",
    "ng-invalid", "ng-pristine", "ng-untouched",
]
VALID_CLASSES = ["valid", "is-valid", "filled", "ng-valid", "ng-dirty", "ng-touched"]
PARENT_ERROR_CLASSES = ["has-error", "error", "is-invalid"]

# Text longer than this already in a field counts as user input
PREFILLED_MIN_LENGTH = 10

# AI Configuration (for fields rules cannot resolve)
AI_CONFIG = {
    "provider": os.getenv("AUTOFILL_AI_PROVIDER", "ollama"),  # ollama (free) or claude (paid)
    "ollama_model": os.getenv("OLLAMA_MODEL", "llama3.2:3b"),
    "ollama_url": os.getenv("OLLAMA_URL", "http://localhost:11434"),
    "claude_model": os.getenv("CLAUDE_MODEL", "claude-sonnet-4-20250514"),
    "anthropic_api_key": os.getenv("ANTHROPIC_API_KEY"),
    "request_timeout": 60,
    "temperature": 0.3,
}
