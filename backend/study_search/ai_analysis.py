import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol

from openai import OpenAI  # pip install openai>=1.0.0
from pydantic import ValidationError

from . import config
from .entity_extractor import extract_course_info
from .schemas import AIAnalysis, Concept, ExtractionResult

log = logging.getLogger(__name__)


SYSTEM_PROMPT = """
You are an expert academic assistant specializing in UC Berkeley courses.
Analyze study queries and provide:
  1. A clear, comprehensive summary (2-3 sentences)
  2. 5 related concepts with their connection type and relevance strength (0.0-1.0)
  3. 4 key learning points
  4. Search terms that would help find relevant academic resources

Focus on Berkeley course subjects and academic terminology.

Only output JSON using this schema:

{
  "summary": "Clear explanation of the topic...",
  "concepts": [
    {
      "id": "unique_concept_id",
      "name": "Concept Name",
      "connection": "How it relates to the query",
      "strength": 0.8
    }
  ],
  "keyPoints": ["Point 1", "Point 2", "Point 3", "Point 4"],
  "searchTerms": ["term1", "term2", "term3"]
}

Always output valid JSON and nothing else.
"""

ANALYSIS_JSON_SCHEMA = {
    "name": "StudyQueryAnalysis",
    "schema": {
        "type": "object",
        "properties": {
            "summary": {"type": "string"},
            "concepts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "name": {"type": "string"},
                        "connection": {"type": "string"},
                        "strength": {"type": "number"},
                    },
                    "required": ["id", "name", "connection", "strength"],
                    "additionalProperties": False,
                },
            },
            "keyPoints": {"type": "array", "items": {"type": "string"}},
            "searchTerms": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["summary", "concepts", "keyPoints", "searchTerms"],
        "additionalProperties": False,
    },
}

FALLBACK_CONCEPTS = [
    Concept(
        id="concept-1",
        name="Core Course Material",
        connection="Foundational topics covered in the course",
        strength=0.8,
    ),
    Concept(
        id="concept-2",
        name="Past Exams",
        connection="Previous midterms and finals show what gets tested",
        strength=0.7,
    ),
    Concept(
        id="concept-3",
        name="Practice Problems",
        connection="Homework and discussion worksheets reinforce the material",
        strength=0.6,
    ),
    Concept(
        id="concept-4",
        name="Lecture Notes",
        connection="Lecture slides and notes outline the key ideas",
        strength=0.5,
    ),
]

FALLBACK_KEY_POINTS = [
    "Review the lecture notes for the relevant topics",
    "Work through past exams under timed conditions",
    "Redo homework and discussion problems you found difficult",
    "Check the course website for official study guides",
]


class CompletionError(RuntimeError):
    """The completion service could not produce any text."""


class Completer(Protocol):
    def complete(self, system_instruction: str, user_prompt: str) -> str:
        ...


class OpenAICompleter:
    """Completion capability backed by the OpenAI API."""

    def __init__(
        self,
        client: OpenAI,
        model: str = config.OPENAI_MODEL,
        temperature: float = config.OPENAI_TEMPERATURE,
        max_tokens: int = config.OPENAI_MAX_TOKENS,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.transport_used: Optional[str] = None

    def complete(self, system_instruction: str, user_prompt: str) -> str:
        messages = [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": user_prompt},
        ]
        content: Optional[str] = None

        try:
            resp = self.client.responses.create(
                model=self.model,
                input=messages,
                temperature=self.temperature,
                max_output_tokens=self.max_tokens,
                text={"format": {"type": "json_schema", "strict": True, **ANALYSIS_JSON_SCHEMA}},
            )
            content = resp.output_text
            self.transport_used = "responses"
        except (TypeError, AttributeError) as exc:
            log.warning(
                "AI analysis: responses API unavailable, falling back to chat.completions: %s",
                exc,
            )
        except Exception as exc:
            log.warning("AI analysis: OpenAI request failed via responses API: %s", exc)

        if content is None:
            try:
                chat_resp = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    response_format={"type": "json_object"},
                )
                content = chat_resp.choices[0].message.content
                self.transport_used = "chat.completions"
            except Exception as exc:
                raise CompletionError(f"OpenAI request failed: {exc}") from exc

        if not content:
            raise CompletionError("Empty response from OpenAI API")
        return content


@lru_cache(maxsize=1)
def _openai_client() -> OpenAI:
    return OpenAI(api_key=config.OPENAI_API_KEY)


def get_completer() -> Optional[Completer]:
    """FastAPI dependency; None when no API key is configured."""
    if not config.OPENAI_API_KEY:
        log.warning("AI analysis disabled: OPENAI_API_KEY not set")
        return None
    return OpenAICompleter(_openai_client())


def parse_analysis(content: str) -> AIAnalysis:
    """
    Decode the first top-level JSON object in the completion text and validate it.

    Models sometimes wrap the object in prose or a code fence, so decoding is
    tried from each "{" in turn until one yields a JSON object.
    Raises ValueError (json.JSONDecodeError / ValidationError are subclasses).
    """
    decoder = json.JSONDecoder()
    start = content.find("{")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return AIAnalysis.model_validate(data)
        start = content.find("{", start + 1)
    raise ValueError("no JSON object in completion")


def fallback_analysis(extraction: ExtractionResult) -> AIAnalysis:
    """Deterministic analysis built only from the rule-based extraction."""
    departments = sorted(extraction.departments)
    if departments:
        summary = f"This query relates to {', '.join(departments)} coursework."
    else:
        summary = "This query relates to general academic coursework."

    return AIAnalysis(
        summary=summary,
        concepts=[c.model_copy() for c in FALLBACK_CONCEPTS],
        key_points=list(FALLBACK_KEY_POINTS),
        search_terms=sorted(extraction.all_terms),
    )


def _set_debug(debug: Optional[Dict[str, Any]], **values: Any) -> None:
    if debug is not None:
        debug.update(values)


def analyze_query(
    text: str,
    completer: Optional[Completer],
    extraction: Optional[ExtractionResult] = None,
    debug: Optional[Dict[str, Any]] = None,
) -> AIAnalysis:
    """
    Ask the completion service for a study analysis of the query.

    Never raises: a missing completer, a failed call or unusable output
    all produce the fallback analysis instead.
    """
    if extraction is None:
        extraction = extract_course_info(text)

    if completer is None:
        _set_debug(debug, analysis_source="fallback", fallback_reason="ai_disabled")
        return fallback_analysis(extraction)

    try:
        content = completer.complete(SYSTEM_PROMPT, text)
    except Exception as exc:
        log.warning("AI analysis: completion failed, using fallback: %s", exc)
        _set_debug(debug, analysis_source="fallback", fallback_reason="completion_failed")
        return fallback_analysis(extraction)

    _set_debug(debug, transport_used=getattr(completer, "transport_used", None))

    if not content or not content.strip():
        log.warning("AI analysis: empty completion, using fallback")
        _set_debug(debug, analysis_source="fallback", fallback_reason="empty_response")
        return fallback_analysis(extraction)

    try:
        analysis = parse_analysis(content)
    except (ValueError, ValidationError, RecursionError) as exc:
        log.warning("AI analysis: model returned unusable content: %s", exc)
        _set_debug(debug, analysis_source="fallback", fallback_reason="invalid_response")
        return fallback_analysis(extraction)

    log.info(
        "AI analysis parsed: %d concepts, %d key points, %d search terms",
        len(analysis.concepts),
        len(analysis.key_points),
        len(analysis.search_terms),
    )
    _set_debug(debug, analysis_source="ai")
    return analysis


def clean_search_terms(terms: List[str]) -> List[str]:
    """Drop blank entries and case-insensitive repeats, keeping first-seen order."""
    seen = set()
    out: List[str] = []
    for term in terms:
        if not isinstance(term, str):
            continue
        stripped = term.strip()
        key = stripped.lower()
        if stripped and key not in seen:
            seen.add(key)
            out.append(stripped)
    return out
