"""Candidate generators backed by an external reasoning service.

Both matchers ask the service for ``{"matches": [...]}`` entries naming a
spreadsheet column and a template LABEL position. The label is then resolved
to its data cell with the same locator the rule matcher uses, so external
suggestions land on the same cells rule matches do.

Any failure (no client, transport error, timeout, unparseable reply) yields an
empty candidate list for that matcher alone.
"""

import asyncio
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import ExternalServiceConfig, HeuristicConfig
from ..grid.models import Grid
from ..llm.base import LLMClient
from ..llm.call_log import MatcherCallLogger
from ..llm.factory import create_llm_client
from .models import CandidateOrigin, MappingCandidate, MappingContext
from .prompts import (
    COLUMN_SEMANTICS_SYSTEM_PROMPT,
    TEMPLATE_STRUCTURE_SYSTEM_PROMPT,
    build_column_semantics_prompt,
    build_template_structure_prompt,
)
from .rules import label_cells, locate_data_cell

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class ExternalMatch(BaseModel):
    """One entry of a service reply."""

    model_config = ConfigDict(populate_by_name=True)

    source_column: str = Field(alias="sourceColumn")
    label_row: int = Field(alias="labelRow")
    label_col: int = Field(alias="labelCol")
    label_text: Optional[str] = Field(default=None, alias="labelText")
    confidence: Optional[float] = None


def parse_matches(text: str) -> Optional[list[ExternalMatch]]:
    """Extract match entries from a service reply.

    Returns None when the reply holds no usable JSON object. Individual
    entries that do not fit the contract are skipped.
    """
    found = JSON_OBJECT_PATTERN.search(text or "")
    if not found:
        return None
    try:
        data = json.loads(found.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("matches", []), list):
        return None

    matches = []
    for entry in data.get("matches", []):
        if not isinstance(entry, dict):
            continue
        try:
            matches.append(ExternalMatch.model_validate(entry))
        except ValidationError as e:
            logger.debug(f"Skipping malformed match entry {entry!r}: {e.error_count()} error(s)")
    return matches


class ExternalSemanticMatcher(ABC):
    """Base class for matchers that consult the reasoning service."""

    origin: CandidateOrigin
    system_prompt: str = ""

    def __init__(
        self,
        service: Optional[ExternalServiceConfig] = None,
        client: Optional[LLMClient] = None,
        config: Optional[HeuristicConfig] = None,
        call_logger: Optional[MatcherCallLogger] = None,
    ):
        self.service = service or ExternalServiceConfig()
        self.client = client if client is not None else create_llm_client(self.service)
        self.config = config or HeuristicConfig()
        self.call_logger = call_logger

    @abstractmethod
    def build_prompt(self, template: Grid, columns: list[str], context: MappingContext) -> str:
        """Build the user prompt for one run."""
        pass

    def _fit_prompt(self, prompt: str) -> str:
        limit = self.service.prompt_max_chars
        if len(prompt) <= limit:
            return prompt
        logger.warning(f"{self.origin.value}: prompt truncated from {len(prompt)} to {limit} chars")
        return prompt[:limit]

    def _record(self, prompt: str, started: float, outcome: str, **kwargs):
        if self.call_logger is None:
            return
        self.call_logger.log_call(
            matcher=self.origin.value,
            provider=self.service.provider,
            model=self.service.model,
            prompt_chars=len(prompt),
            duration_seconds=time.monotonic() - started,
            outcome=outcome,
            **kwargs,
        )

    async def generate(
        self,
        template: Grid,
        columns: list[str],
        context: Optional[MappingContext] = None,
    ) -> list[MappingCandidate]:
        """Ask the service for matches and resolve them to data cells."""
        if self.client is None:
            logger.debug(f"{self.origin.value}: no client configured, skipping")
            return []

        prompt = self._fit_prompt(self.build_prompt(template, columns, context or MappingContext()))
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.create_message(
                    messages=[{"role": "user", "content": prompt}],
                    system=self.system_prompt,
                    max_tokens=self.service.max_tokens,
                    model=self.service.model,
                    temperature=self.service.temperature,
                ),
                timeout=self.service.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"{self.origin.value}: no reply within {self.service.timeout_seconds}s, skipping"
            )
            self._record(prompt, started, "timeout")
            return []
        except Exception as e:
            logger.error(f"{self.origin.value}: service call failed: {e}")
            self._record(prompt, started, "error", error=str(e))
            return []

        matches = parse_matches(response.text)
        if matches is None:
            logger.warning(f"{self.origin.value}: reply did not contain a JSON object")
            self._record(prompt, started, "malformed", usage=response.usage)
            return []

        candidates = self._resolve(matches, template, columns)
        self._record(prompt, started, "ok", match_count=len(candidates), usage=response.usage)
        logger.info(
            f"{self.origin.value}: {len(candidates)} candidates from {len(matches)} reported matches"
        )
        return candidates

    def _resolve(
        self, matches: list[ExternalMatch], template: Grid, columns: list[str]
    ) -> list[MappingCandidate]:
        known_columns = set(columns)
        seen: set[tuple[str, int, int]] = set()
        candidates = []

        for match in matches:
            if match.source_column not in known_columns:
                logger.debug(f"{self.origin.value}: unknown column '{match.source_column}'")
                continue
            label = template.cell_at(match.label_row, match.label_col)
            if label is None:
                logger.debug(
                    f"{self.origin.value}: no cell at label position "
                    f"({match.label_row}, {match.label_col})"
                )
                continue
            data_cell = locate_data_cell(template, label, self.config)
            if data_cell is None:
                continue

            key = (match.source_column, data_cell.row, data_cell.col)
            if key in seen:
                continue
            seen.add(key)

            confidence = match.confidence
            if confidence is None:
                confidence = self.config.external_default_confidence
            confidence = min(1.0, max(0.0, confidence))
            label_text = match.label_text or label.text.strip()

            candidates.append(
                MappingCandidate(
                    source_column=match.source_column,
                    target_row=data_cell.row,
                    target_col=data_cell.col,
                    label_text=label_text,
                    confidence=confidence,
                    origin=self.origin,
                    reason=f'semantic match: "{match.source_column}" ~ "{label_text}"',
                )
            )
        return candidates


class TemplateStructureMatcher(ExternalSemanticMatcher):
    """Describes the whole template grid and lets the service place each column."""

    origin = CandidateOrigin.EXTERNAL_A
    system_prompt = TEMPLATE_STRUCTURE_SYSTEM_PROMPT

    def build_prompt(self, template: Grid, columns: list[str], context: MappingContext) -> str:
        return build_template_structure_prompt(template, columns)


class ColumnSemanticsMatcher(ExternalSemanticMatcher):
    """Pairs column names with label texts by meaning, guided by domain context."""

    origin = CandidateOrigin.EXTERNAL_B
    system_prompt = COLUMN_SEMANTICS_SYSTEM_PROMPT

    def build_prompt(self, template: Grid, columns: list[str], context: MappingContext) -> str:
        labels = [cell for cell in label_cells(template, self.config) if cell.is_header]
        return build_column_semantics_prompt(columns, labels, context)
