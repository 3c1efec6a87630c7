"""
Request/response contract for the /trends endpoints.
Series entries are finite numbers within ±MAX_ABS_VALUE or null (no data for that step, not zero).
"""
from typing import Annotated, Literal

from pydantic import BaseModel, Field, FiniteFloat, field_validator, model_validator

MAX_SERIES_POINTS = 5000
MAX_COMPARE_LINES = 20
# Largest accepted magnitude of a single value.
MAX_ABS_VALUE = 1e15

SeriesValue = Annotated[FiniteFloat, Field(ge=-MAX_ABS_VALUE, le=MAX_ABS_VALUE)]
SeriesValues = Annotated[list[SeriesValue | None], Field(max_length=MAX_SERIES_POINTS)]
Granularity = Literal["daily", "weekly", "monthly", "yearly"]


class SeriesAnalysisRequest(BaseModel):
    series: SeriesValues


class ChartLine(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=214)]
    series: SeriesValues

    @field_validator("name", mode="after")
    @classmethod
    def name_strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must be non-empty after stripping whitespace")
        return v


class CompareRequest(BaseModel):
    lines: Annotated[list[ChartLine], Field(min_length=1, max_length=MAX_COMPARE_LINES)]

    @model_validator(mode="after")
    def names_unique(self):
        names = [line.name for line in self.lines]
        if len(names) != len(set(names)):
            raise ValueError("line names must be unique")
        return self


class DailyDownloads(BaseModel):
    day: Annotated[str, Field(min_length=1)]
    downloads: Annotated[FiniteFloat, Field(ge=0, le=MAX_ABS_VALUE)]


class WeeklyRequest(BaseModel):
    daily: Annotated[list[DailyDownloads], Field(max_length=MAX_SERIES_POINTS)]
    bucket_size: Annotated[int, Field(ge=1, le=366)] = 7


class MessageOptions(BaseModel):
    # message key -> template with {named} placeholders; unknown keys render as the key itself
    messages: dict[str, str] = Field(default_factory=dict)
    number_decimals: Annotated[int, Field(ge=0, le=6)] = 0


class LineAltTextRequest(MessageOptions):
    lines: Annotated[list[ChartLine], Field(min_length=1, max_length=MAX_COMPARE_LINES)]
    formatted_dates: list[str] = Field(default_factory=list)
    formatted_dataset_values: list[list[str]] = Field(default_factory=list)
    has_estimation: bool = False
    granularity: Granularity = "weekly"


class VersionsAltTextRequest(MessageOptions):
    package_name: Annotated[str, Field(min_length=1)]
    downloads: SeriesValues
    version_labels: list[str] = Field(default_factory=list)
    date_range_label: str | None = None
    semver_grouping_mode: Literal["major", "minor"] = "major"


# --- Response models ---


class ResponseCacheMeta(BaseModel):
    hit: bool
    key_hash: str | None = None
    ttl_seconds: int


class InterpretationOut(BaseModel):
    volatility: Literal["very_stable", "moderate", "volatile", "undefined"]
    trend: Literal["strong", "weak", "none", "undefined"]


class TrendAnalysisOut(BaseModel):
    mean: float
    standard_deviation: float
    coefficient_of_variation: float | None
    slope: float
    r_squared: float | None
    interpretation: InterpretationOut


class SeriesMeta(BaseModel):
    points: int
    valid_points: int
    winsorized: bool


class SeriesAnalysisMeta(SeriesMeta):
    response_cache: ResponseCacheMeta


class SeriesAnalysisResponse(BaseModel):
    analysis: TrendAnalysisOut
    meta: SeriesAnalysisMeta


class LineAnalysisOut(BaseModel):
    name: str
    analysis: TrendAnalysisOut
    meta: SeriesMeta


class CompareMeta(BaseModel):
    series_count: int
    response_cache: ResponseCacheMeta


class CompareResponse(BaseModel):
    lines: list[LineAnalysisOut]
    meta: CompareMeta


class BucketOut(BaseModel):
    period_start: str
    period_end: str
    total: float


class WeeklyMeta(BaseModel):
    days: int
    bucket_size: int
    buckets: int


class WeeklyResponse(BaseModel):
    buckets: list[BucketOut]
    meta: WeeklyMeta


class AltTextResponse(BaseModel):
    alt_text: str
