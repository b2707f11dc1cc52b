from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PLACEHOLDER_SUMMARY = "No summary available for this query."


class ExtractionResult(BaseModel):
    """Structured signals pulled out of a raw study query."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    course_codes: FrozenSet[str] = Field(default_factory=frozenset, alias="courseCodes")
    departments: FrozenSet[str] = Field(default_factory=frozenset)
    prefixes: FrozenSet[str] = Field(default_factory=frozenset)
    resource_types: FrozenSet[str] = Field(default_factory=frozenset, alias="resourceTypes")
    all_terms: FrozenSet[str] = Field(default_factory=frozenset, alias="allTerms")


class Concept(BaseModel):
    id: str
    name: str
    connection: str = ""
    strength: float = 0.5

    @field_validator("connection", mode="before")
    @classmethod
    def _default_connection(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("id", "name", "connection", mode="before")
    @classmethod
    def _stringify_scalars(cls, value: Any) -> Any:
        # numeric ids and names come back from the model unquoted
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("strength", mode="before")
    @classmethod
    def _clamp_strength(cls, value: Any) -> float:
        # bool is an int subclass; the model sometimes emits true/false here
        if isinstance(value, bool) or value is None:
            return 0.5
        try:
            strength = float(value)
        except (TypeError, ValueError):
            return 0.5
        if strength != strength:  # NaN
            return 0.5
        return min(1.0, max(0.0, strength))


class AIAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str = PLACEHOLDER_SUMMARY
    concepts: List[Concept] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    search_terms: List[str] = Field(default_factory=list, alias="searchTerms")

    @field_validator("summary", mode="before")
    @classmethod
    def _default_summary(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return PLACEHOLDER_SUMMARY
        return value

    @field_validator("concepts", mode="before")
    @classmethod
    def _assign_concept_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        concepts = []
        for index, item in enumerate(value, start=1):
            if isinstance(item, dict) and not item.get("id"):
                item = {**item, "id": f"concept-{index}"}
            concepts.append(item)
        return concepts

    @field_validator("key_points", "search_terms", mode="before")
    @classmethod
    def _default_list(cls, value: Any) -> Any:
        return [] if value is None else value


class ResourceMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    instructor: Optional[str] = None
    resource_type: str = ""
    source: str = ""
    department: str = ""


class CourseResource(BaseModel):
    id: str
    course_code: str = ""
    course_name: str = ""
    department: str = ""
    school: str = ""
    semester: str = ""
    year: str = ""
    resource_type: str = ""
    resource_url: str = ""
    metadata: ResourceMetadata = Field(default_factory=ResourceMetadata)

    parent_course_id: Optional[str] = None
    collection_path: Optional[str] = None


class StoredDocument(BaseModel):
    """Raw schemaless record as handed back by the document store."""

    id: str
    path: str
    parent_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class SearchRequest(BaseModel):
    # Left untyped so a non-string prompt reaches validation as a 400, not a 422.
    prompt: Any = None
    filters: Dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    analysis: AIAnalysis
    resources: List[CourseResource] = Field(default_factory=list)
    extraction: ExtractionResult
    diagnostics: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    db_ok: bool
