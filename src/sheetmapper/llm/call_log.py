"""Recording of external matcher calls."""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class MatcherCallRecord:
    """Record of a single external matcher call."""

    timestamp: str
    matcher: str
    provider: str
    model: str
    prompt_chars: int
    duration_seconds: float
    outcome: str
    match_count: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class MatcherCallLogger:
    """Keeps per-session call records and optionally appends them to a JSONL file."""

    def __init__(self, log_path: Optional[Path] = None, enabled: bool = False):
        """Initialize the logger.

        Args:
            log_path: Path to the JSONL log file
            enabled: Whether records are written to ``log_path``
        """
        self.log_path = log_path
        self.enabled = enabled and log_path is not None
        self.session_calls: list[MatcherCallRecord] = []

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_call(
        self,
        matcher: str,
        provider: str,
        model: str,
        prompt_chars: int,
        duration_seconds: float,
        outcome: str,
        match_count: int = 0,
        usage: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> MatcherCallRecord:
        """Record one call.

        Args:
            matcher: Candidate origin of the calling matcher (e.g. "external_a")
            provider: Provider name (e.g. "anthropic", "gemini")
            model: Model name used
            prompt_chars: Characters sent in the prompt
            duration_seconds: Wall-clock time of the call
            outcome: "ok", "timeout", "error" or "malformed"
            match_count: Number of candidates produced
            usage: Optional token usage reported by the service
            error: Error description for failed calls

        Returns:
            The created MatcherCallRecord
        """
        usage = usage or {}
        record = MatcherCallRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            matcher=matcher,
            provider=provider,
            model=model,
            prompt_chars=prompt_chars,
            duration_seconds=round(duration_seconds, 3),
            outcome=outcome,
            match_count=match_count,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            error=error,
        )

        self.session_calls.append(record)

        if self.enabled:
            self._write_to_log(record)

        return record

    def _write_to_log(self, record: MatcherCallRecord):
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record.to_dict(), ensure_ascii=False) + "\n")
        except OSError as e:
            # A broken call log must not fail the mapping run
            logger.warning(f"Failed to write matcher call log: {e}")

    def get_session_summary(self) -> Dict[str, Any]:
        """Summary statistics for the calls recorded so far."""
        outcomes: Dict[str, int] = {}
        for call in self.session_calls:
            outcomes[call.outcome] = outcomes.get(call.outcome, 0) + 1

        return {
            "total_calls": len(self.session_calls),
            "outcomes": outcomes,
            "total_input_tokens": sum(call.input_tokens for call in self.session_calls),
            "total_output_tokens": sum(call.output_tokens for call in self.session_calls),
            "last_call": self.session_calls[-1].to_dict() if self.session_calls else None,
        }

    def reset_session(self):
        """Reset session tracking."""
        self.session_calls = []
