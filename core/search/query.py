"""
ParsedQuery - structured search criteria produced by the query parser.

Fields may be a plain string or a MultiValueField (values + AND/OR operator).
Empty or absent fields are never rendered into prompts or provider queries.
"""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PARSED_QUERY_SCHEMA_VERSION = 1
NOT_SPECIFIED = "Not specified"
UNTITLED_SEARCH = "Untitled Search"
MAX_SEARCH_NAME_LENGTH = 50

CRITERIA_FIELDS = (
    "job_title",
    "skills",
    "location",
    "industry",
    "years_of_experience",
    "company",
    "education",
)


class MultiValueField(BaseModel):
    values: List[str] = Field(default_factory=list)
    operator: Literal["AND", "OR"] = "OR"

    @field_validator("operator", mode="before")
    @classmethod
    def _upper_operator(cls, value):
        return value.upper() if isinstance(value, str) else value


FieldValue = Union[str, MultiValueField]


class QueryTag(BaseModel):
    value: str
    category: Optional[str] = None


class ParsedQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    job_title: FieldValue = ""
    skills: FieldValue = ""
    location: FieldValue = ""
    industry: FieldValue = ""
    years_of_experience: FieldValue = ""
    company: FieldValue = ""
    education: FieldValue = ""
    tags: List[QueryTag] = Field(default_factory=list)
    schema_version: int = PARSED_QUERY_SCHEMA_VERSION

    @field_validator("schema_version")
    @classmethod
    def _current_version(cls, value: int) -> int:
        if value != PARSED_QUERY_SCHEMA_VERSION:
            raise ValueError(
                f"Unsupported parse schema version {value}, expected {PARSED_QUERY_SCHEMA_VERSION}"
            )
        return value

    def values_of(self, field_name: str) -> List[str]:
        return field_values(getattr(self, field_name))

    def is_empty(self) -> bool:
        return not any(self.values_of(name) for name in CRITERIA_FIELDS) and not self.tags


def field_values(value: Optional[FieldValue]) -> List[str]:
    """Non-empty, stripped values of a field."""
    if value is None:
        return []
    if isinstance(value, MultiValueField):
        return [v.strip() for v in value.values if v and v.strip()]
    stripped = value.strip()
    return [stripped] if stripped else []


def format_field(value: Optional[FieldValue], placeholder: Optional[str] = None) -> Optional[str]:
    """
    Human-readable rendering of a field.

    One value renders as-is, two as "a or b", three or more as "a, b, or c"
    (the connective follows the field's operator). Empty fields render as
    ``placeholder``.
    """
    values = field_values(value)
    if not values:
        return placeholder
    if len(values) == 1:
        return values[0]

    connective = value.operator.lower() if isinstance(value, MultiValueField) else "or"
    if len(values) == 2:
        return f"{values[0]} {connective} {values[1]}"
    return f"{', '.join(values[:-1])}, {connective} {values[-1]}"


def generate_search_name(parsed: ParsedQuery) -> str:
    """Display name for a search, derived from its most specific criterion."""
    name = None
    if parsed.values_of("job_title"):
        name = format_field(parsed.job_title)
    elif parsed.values_of("skills"):
        name = f"Skills: {format_field(parsed.skills)}"
    elif parsed.values_of("company"):
        name = f"Company: {format_field(parsed.company)}"
    elif parsed.values_of("location"):
        name = f"Location: {format_field(parsed.location)}"
    elif parsed.values_of("industry"):
        name = f"Industry: {format_field(parsed.industry)}"
    else:
        tag_values = [tag.value.strip() for tag in parsed.tags if tag.value and tag.value.strip()]
        if tag_values:
            name = ", ".join(tag_values)

    if not name:
        return UNTITLED_SEARCH
    if len(name) > MAX_SEARCH_NAME_LENGTH:
        return name[:MAX_SEARCH_NAME_LENGTH - 1] + "…"
    return name
