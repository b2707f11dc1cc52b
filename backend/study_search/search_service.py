# search_service.py
import asyncio
import logging
import time
from typing import Any, Dict, Optional

from starlette.concurrency import run_in_threadpool

from .ai_analysis import Completer, analyze_query, clean_search_terms
from .entity_extractor import extract_course_info
from .resource_matcher import ResourceMatcher
from .schemas import SearchResponse

log = logging.getLogger(__name__)


class InvalidPromptError(ValueError):
    """Prompt missing, not a string, or blank."""


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


def validate_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidPromptError("Valid prompt is required")
    return prompt


async def run_search(
    prompt: Any,
    completer: Optional[Completer],
    matcher: ResourceMatcher,
    filters: Optional[Dict[str, Any]] = None,
) -> SearchResponse:
    """
    Extract signals, analyse and scan the store concurrently, then rank.

    The analysis and the store scans share only the extraction, so they run
    side by side; ranking needs the analysis search terms and runs last.
    StoreUnavailableError from the connectivity check propagates.
    """
    text = validate_prompt(prompt)
    started = time.perf_counter()
    debug: Dict[str, Any] = {}

    t0 = time.perf_counter()
    extraction = extract_course_info(text)
    extraction_ms = _elapsed_ms(t0)
    log.info(
        "Extracted %d course codes, %d departments, %d resource types",
        len(extraction.course_codes),
        len(extraction.departments),
        len(extraction.resource_types),
    )

    t0 = time.perf_counter()
    analysis, pool = await asyncio.gather(
        run_in_threadpool(analyze_query, text, completer, extraction, debug),
        run_in_threadpool(matcher.collect, extraction),
    )
    gather_ms = _elapsed_ms(t0)

    search_terms = clean_search_terms(analysis.search_terms)
    t0 = time.perf_counter()
    resources = await run_in_threadpool(matcher.rank, pool, extraction, search_terms)
    rank_ms = _elapsed_ms(t0)

    total_ms = _elapsed_ms(started)
    log.info("Search returned %d resources in %.1f ms", len(resources), total_ms)

    diagnostics: Dict[str, Any] = {
        **debug,
        "strategy_hits": dict(pool.hits),
        "matched_course_ids": list(pool.matched_course_ids),
        "candidate_count": len(pool.candidates),
        "result_count": len(resources),
        "result_cap": matcher.limit,
        "timings_ms": {
            "extraction": extraction_ms,
            "analysis_and_scan": gather_ms,
            "ranking": rank_ms,
            "total": total_ms,
        },
    }
    if filters:
        diagnostics["filters_ignored"] = filters

    return SearchResponse(
        analysis=analysis,
        resources=resources,
        extraction=extraction,
        diagnostics=diagnostics,
    )
