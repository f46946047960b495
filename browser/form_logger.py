"""
Form fill logger.

Every fill pass is saved as one JSON file under logs/form_fills/ with:
- URL and page title
- every field tried: label, category, value, source (profile, default, ai), outcome
- section results and general errors
"""

import json
import logging
from dataclasses import asdict, dataclass, field as dataclass_field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .config import LOGS_DIR

logger = logging.getLogger(__name__)


@dataclass
class FieldLog:
    """Log entry for a single field."""
    field_id: str
    field_type: str
    question: str  # label / context
    category: Optional[str]
    value_filled: str
    source: str  # profile, default, ai, section, upload
    success: bool
    error: Optional[str] = None


@dataclass
class FormFillLog:
    """Complete log for a fill session."""
    timestamp: str
    url: str
    title: str
    status: str  # started, completed, error

    fields_total: int = 0
    fields_filled: int = 0
    fields_skipped: int = 0
    fields_error: int = 0

    field_logs: List[Dict[str, Any]] = dataclass_field(default_factory=list)
    sections: List[Dict[str, Any]] = dataclass_field(default_factory=list)
    errors: List[str] = dataclass_field(default_factory=list)

    duration_seconds: float = 0.0


class FormLogger:
    """Collects one session at a time and writes it on end_session()."""

    def __init__(self, log_dir: Optional[Path] = None):
        self.log_dir = Path(log_dir or LOGS_DIR)
        self.current_log: Optional[FormFillLog] = None
        self.start_time: Optional[datetime] = None

    def start_session(self, url: str = "", title: str = "") -> FormFillLog:
        self.start_time = datetime.now()
        self.current_log = FormFillLog(
            timestamp=self.start_time.isoformat(),
            url=url,
            title=title,
            status="started",
        )
        return self.current_log

    def log_field(self, field_id: str, field_type: str, question: str, category: Optional[str],
                  value: str, source: str, success: bool, error: Optional[str] = None):
        if self.current_log is None:
            return

        entry = FieldLog(
            field_id=field_id,
            field_type=field_type,
            question=question[:100] if question else "",
            category=category,
            value_filled=value[:50] if value else "",
            source=source,
            success=success,
            error=error,
        )
        self.current_log.field_logs.append(asdict(entry))
        self.current_log.fields_total += 1

        if success:
            self.current_log.fields_filled += 1
        elif error:
            self.current_log.fields_error += 1
        else:
            self.current_log.fields_skipped += 1

    def log_section(self, entity: str, state: str, entries_total: int, entries_filled: int,
                    fields: List[str], error: Optional[str] = None):
        if self.current_log is None:
            return
        self.current_log.sections.append({
            "entity": entity,
            "state": state,
            "entries_total": entries_total,
            "entries_filled": entries_filled,
            "fields": list(fields),
            "error": error,
        })

    def log_error(self, error: str):
        if self.current_log:
            self.current_log.errors.append(error)

    def end_session(self, status: str = "completed") -> Optional[str]:
        """Save the session. Returns the log file path."""
        if self.current_log is None:
            return None

        self.current_log.status = status
        if self.start_time:
            self.current_log.duration_seconds = (datetime.now() - self.start_time).total_seconds()

        slug = "unknown"
        if self.current_log.url:
            host = urlparse(self.current_log.url).netloc or "unknown"
            slug = host.replace("www.", "").split(".")[0][:20] or "unknown"
        filename = f"{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}_{slug}.json"

        filepath = self.log_dir / filename
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(asdict(self.current_log), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Could not write fill log {filepath}: {e}")
            return None
        finally:
            self.current_log = None
            self.start_time = None

        return str(filepath)

    def get_recent_logs(self, n: int = 10) -> List[Dict[str, Any]]:
        """The N most recent session logs, newest first."""
        if not self.log_dir.exists():
            return []
        logs = []
        for filepath in sorted(self.log_dir.glob("*.json"), reverse=True)[:n]:
            try:
                with open(filepath, encoding="utf-8") as f:
                    log = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.debug(f"Skipping unreadable log {filepath}: {e}")
                continue
            log["_filepath"] = str(filepath)
            logs.append(log)
        return logs

    def get_log_summary(self) -> Dict[str, Any]:
        logs = self.get_recent_logs(100)
        total_forms = len(logs)
        completed = sum(1 for l in logs if l.get("status") == "completed")
        return {
            "total_forms": total_forms,
            "completed": completed,
            "success_rate": completed / total_forms if total_forms > 0 else 0,
            "total_fields_filled": sum(l.get("fields_filled", 0) for l in logs),
            "total_errors": sum(len(l.get("errors", [])) for l in logs),
        }
