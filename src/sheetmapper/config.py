"""Configuration management for sheetmapper."""

import os
import re
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .defaults import (
    BASIC_COLUMN_PATTERNS,
    DOCUMENT_TITLES,
    KNOWN_LABELS,
    OVERRIDE_RULES,
    REQUIRED_FIELDS,
    SUB_HEADER_PATTERNS,
)

load_dotenv()

Provider = Literal["anthropic", "openrouter", "gemini"]

DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "openrouter": "anthropic/claude-3.5-sonnet",
    "gemini": "gemini-2.0-flash",
}


class OverrideRule(BaseModel):
    """A literal column-pattern → template-cell rule applied before label matching."""

    pattern: str
    target_row: int
    target_col: int
    label: str

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid override pattern {value!r}: {e}") from e
        return value

    def matches(self, column: str) -> bool:
        return re.search(self.pattern, column, re.IGNORECASE) is not None


class RequiredField(BaseModel):
    """A field the template must receive, with the alternative names it goes by."""

    name: str
    aliases: list[str] = Field(default_factory=list)

    @property
    def all_names(self) -> list[str]:
        return [self.name, *self.aliases]


class HeuristicConfig(BaseModel):
    """Tunable heuristics for header inference and mapping.

    The defaults reproduce the tuning for the personnel-card document family
    (a Korean program-tracking form). Supply a different instance to adapt the
    engine to other templates.
    """

    # Header inference
    meta_scan_rows: int = Field(default=10, ge=1)
    header_scan_rows: int = Field(default=15, ge=1)
    min_header_cells: int = Field(default=3, ge=1)
    short_label_min: int = 2
    short_label_max: int = 15
    cell_count_weight: int = 2
    short_label_weight: int = 3
    number_label_bonus: int = 30
    name_label_bonus: int = 30
    meta_pattern_penalty: int = 20
    rows_above_main: int = 2
    rows_below_main: int = 3
    number_label_pattern: str = r"^(No\.?|번호|순번)$"
    name_label_pattern: str = r"^(이름|성명|한글이름|영문이름|Name)$"
    sub_header_patterns: list[str] = Field(default_factory=lambda: list(SUB_HEADER_PATTERNS))
    basic_column_patterns: list[str] = Field(default_factory=lambda: list(BASIC_COLUMN_PATTERNS))

    # Template label detection
    document_titles: list[str] = Field(default_factory=lambda: list(DOCUMENT_TITLES))
    known_labels: list[str] = Field(default_factory=lambda: list(KNOWN_LABELS))
    section_title_max_length: int = 20
    below_scan_rows: int = 2

    # Matching and finalization
    exact_match_confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    partial_match_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    override_confidence: float = Field(default=0.98, ge=0.0, le=1.0)
    external_default_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    vote_boost: float = Field(default=0.1, ge=0.0, le=1.0)
    confidence_floor: float = Field(default=0.5, ge=0.0, le=1.0)
    override_rules: list[OverrideRule] = Field(
        default_factory=lambda: [OverrideRule(**rule) for rule in OVERRIDE_RULES]
    )
    required_fields: list[RequiredField] = Field(
        default_factory=lambda: [RequiredField(**field) for field in REQUIRED_FIELDS]
    )


class ExternalServiceConfig(BaseModel):
    """Connection settings for one external reasoning service.

    A missing ``api_key`` is a valid state: matchers built from an
    unconfigured service produce no candidates.
    """

    provider: Provider = "anthropic"
    api_key: Optional[str] = None
    model: str = DEFAULT_MODELS["anthropic"]
    base_url: Optional[str] = None
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_tokens: int = Field(default=4096, ge=1)
    temperature: float = 0.1
    prompt_max_chars: int = Field(default=20000, ge=1000)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class Settings(BaseModel):
    """Application settings."""

    # Reasoning service provider ('anthropic', 'openrouter' or 'gemini')
    llm_provider: Provider = os.getenv("LLM_PROVIDER", "anthropic")

    anthropic_api_key: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
    openrouter_api_key: Optional[str] = os.getenv("OPENROUTER_API_KEY")
    gemini_api_key: Optional[str] = os.getenv("GEMINI_API_KEY")

    # Empty means use the provider default
    model_name: str = os.getenv("MODEL_NAME", "")

    # External matcher limits
    matcher_timeout_seconds: float = float(os.getenv("MATCHER_TIMEOUT_SECONDS", "30"))
    matcher_max_tokens: int = int(os.getenv("MATCHER_MAX_TOKENS", "4096"))
    prompt_max_chars: int = int(os.getenv("PROMPT_MAX_CHARS", "20000"))
    enable_external_matchers: bool = os.getenv("ENABLE_EXTERNAL_MATCHERS", "true").lower() == "true"

    # Call logging
    enable_call_logging: bool = os.getenv("ENABLE_CALL_LOGGING", "false").lower() == "true"
    call_log_path: Path = Path(os.getenv("CALL_LOG_PATH", "logs/matcher_calls.jsonl"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def api_key_for(self, provider: str) -> Optional[str]:
        """Return the API key configured for a provider, if any."""
        keys = {
            "anthropic": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
            "gemini": self.gemini_api_key,
        }
        return keys.get(provider) or None

    def external_service(self) -> ExternalServiceConfig:
        """Build the external service configuration for the selected provider."""
        return ExternalServiceConfig(
            provider=self.llm_provider,
            api_key=self.api_key_for(self.llm_provider) if self.enable_external_matchers else None,
            model=self.model_name or DEFAULT_MODELS[self.llm_provider],
            timeout_seconds=self.matcher_timeout_seconds,
            max_tokens=self.matcher_max_tokens,
            prompt_max_chars=self.prompt_max_chars,
        )


settings = Settings()
