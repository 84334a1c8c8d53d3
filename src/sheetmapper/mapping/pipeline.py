"""End-to-end mapping pipeline.

Header inference runs first; the candidate generators then run concurrently
and every one of them is allowed to fail on its own. Merging, finalization
and validation are synchronous.
"""

import asyncio
import logging
from typing import Optional

from ..config import ExternalServiceConfig, HeuristicConfig, settings
from ..grid.models import Grid
from ..grid.reader import SpreadsheetReader, read_template
from ..headers.detector import HeaderDetector
from ..llm.call_log import MatcherCallLogger
from .finalizer import finalize
from .merger import merge_candidates
from .models import CandidateOrigin, MappingCandidate, MappingContext, MappingResult
from .rules import SpatialRuleMatcher
from .semantic import ColumnSemanticsMatcher, TemplateStructureMatcher
from .validator import MappingValidator

logger = logging.getLogger(__name__)


class MappingPipeline:
    """Maps the columns of an irregular spreadsheet onto a template table."""

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        service: Optional[ExternalServiceConfig] = None,
        matchers: Optional[list] = None,
        call_logger: Optional[MatcherCallLogger] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Heuristics for header inference and matching
            service: External service settings; defaults to the environment settings
            matchers: Candidate generators to run instead of the default three
            call_logger: Recorder for external service calls
        """
        self.config = config or HeuristicConfig()
        self.detector = HeaderDetector(self.config)
        self.validator = MappingValidator(self.config)

        if matchers is None:
            service = service or settings.external_service()
            matchers = [
                SpatialRuleMatcher(self.config),
                TemplateStructureMatcher(service, config=self.config, call_logger=call_logger),
                ColumnSemanticsMatcher(service, config=self.config, call_logger=call_logger),
            ]
        self.matchers = matchers

    async def _generate(
        self, template: Grid, columns: list[str], context: Optional[MappingContext]
    ) -> list[MappingCandidate]:
        results = await asyncio.gather(
            *(matcher.generate(template, columns, context) for matcher in self.matchers),
            return_exceptions=True,
        )

        candidates: list[MappingCandidate] = []
        for matcher, result in zip(self.matchers, results):
            if isinstance(result, BaseException):
                name = getattr(matcher, "origin", type(matcher).__name__)
                logger.error(f"Candidate generator {name} failed: {result!r}")
                continue
            candidates.extend(result)
        return candidates

    async def run(
        self,
        spreadsheet: Grid,
        template: Grid,
        context: Optional[MappingContext] = None,
    ) -> MappingResult:
        """Run header inference and mapping over already-decoded grids.

        Raises:
            NoColumnsError: If the spreadsheet header yields no columns
        """
        analysis = self.detector.analyze(spreadsheet)
        columns = analysis.column_names

        candidates = await self._generate(template, columns, context)
        counts = {origin.value: 0 for origin in CandidateOrigin}
        for candidate in candidates:
            counts[candidate.origin.value] += 1
        logger.info(f"Generated candidates: {counts}")

        merged = merge_candidates(candidates, self.config.vote_boost)
        mappings, issues = finalize(merged, template, self.config.confidence_floor)
        validation = self.validator.validate(mappings, columns, template)

        return MappingResult(
            header_analysis=analysis,
            columns=columns,
            candidate_counts=counts,
            merged_candidates=merged,
            mappings=mappings,
            issues=issues,
            validation=validation,
        )

    async def run_files(
        self,
        data: bytes,
        template_data: bytes,
        template_filename: str,
        sheet_name: Optional[str] = None,
        table_index: int = 0,
        context: Optional[MappingContext] = None,
    ) -> MappingResult:
        """Decode a spreadsheet and a template document, then run the pipeline.

        Raises:
            SpreadsheetReadError, SheetNotFoundError: If the spreadsheet cannot be read
            TemplateReadError, NoTemplateTableError: If the template cannot be read
            NoColumnsError: If the spreadsheet header yields no columns
        """
        spreadsheet = await asyncio.to_thread(SpreadsheetReader().read, data, sheet_name)
        document = await asyncio.to_thread(read_template, template_data, template_filename, self.config)
        template = document.table(table_index)
        logger.info(
            f"Decoded spreadsheet ({spreadsheet.row_count}x{spreadsheet.col_count}) and "
            f"template table {table_index} ({template.row_count}x{template.col_count})"
        )
        return await self.run(spreadsheet, template, context)
