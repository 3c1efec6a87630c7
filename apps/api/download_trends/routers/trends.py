"""
Trend analysis endpoints for download series.

Example curl (single series, null = no data that day):

  # curl -X POST http://localhost:8000/trends/analysis -H 'Content-Type: application/json' \
  #   -d '{"series": [120, 135, null, 160, 171]}'

Example curl (compare packages):

  # curl -X POST http://localhost:8000/trends/compare -H 'Content-Type: application/json' \
  #   -d '{"lines": [{"name": "vue", "series": [10, 20, 30]}, {"name": "nuxt", "series": [30, 20, 10]}]}'

Example curl (weekly buckets):

  # curl -X POST http://localhost:8000/trends/weekly -H 'Content-Type: application/json' \
  #   -d '{"daily": [{"day": "2026-03-01", "downloads": 10}, {"day": "2026-03-02", "downloads": 12}]}'
"""
import logging
import os
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from download_trends.models.trends import (
    AltTextResponse,
    CompareRequest,
    CompareResponse,
    LineAltTextRequest,
    SeriesAnalysisRequest,
    SeriesAnalysisResponse,
    VersionsAltTextRequest,
    WeeklyRequest,
    WeeklyResponse,
)
from download_trends.trends.alt_text import (
    ChartSeries,
    TrendLineConfig,
    VersionsBarConfig,
    catalog_translator,
    create_alt_text_for_trend_line_chart,
    create_alt_text_for_versions_bar_chart,
    grouped_number_formatter,
)
from download_trends.trends.analysis import WINSORIZE_MIN_POINTS, compute_trend_analysis, indexed_values
from download_trends.trends.buckets import aggregate_into_buckets
from download_trends.utils.rate_limiter import rate_limit
from download_trends.utils.response_cache import get_response_cache, make_response_key
from download_trends.utils.signature import request_signature, short_hash

ANALYSIS_RESPONSE_TTL = int(os.getenv("ANALYSIS_RESPONSE_TTL", "300"))

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/trends", tags=["trends"])


def _series_meta(series: list[float | None]) -> dict[str, Any]:
    valid_points = len(indexed_values(series))
    return {
        "points": len(series),
        "valid_points": valid_points,
        "winsorized": valid_points >= WINSORIZE_MIN_POINTS,
    }


def _cached(request: Request, endpoint_name: str, payload: dict[str, Any], compute) -> tuple[dict[str, Any], dict[str, Any]]:
    """Run compute() through the response cache; returns (result, response_cache meta)."""
    key = make_response_key(endpoint_name, request_signature(endpoint_name=endpoint_name, payload=payload))
    result, hit = get_response_cache().get_or_compute(key, ANALYSIS_RESPONSE_TTL, compute)
    request.state.response_cache_hit = hit
    return result, {"hit": hit, "key_hash": short_hash(key), "ttl_seconds": ANALYSIS_RESPONSE_TTL}


@router.post(
    "/analysis",
    response_model=SeriesAnalysisResponse,
    dependencies=[Depends(rate_limit("analysis"))],
)
def analyze_series(body: SeriesAnalysisRequest, request: Request) -> dict[str, Any]:
    """Statistics, volatility and trend class of one series."""
    request.state.series_count = 1

    def compute() -> dict[str, Any]:
        return {
            "analysis": compute_trend_analysis(body.series).to_dict(),
            "meta": _series_meta(body.series),
        }

    try:
        result, rc_meta = _cached(request, "analysis", body.model_dump(), compute)
    except Exception:
        logger.exception("trends/analysis failed")
        raise HTTPException(status_code=500, detail="trends/analysis failed")

    return {"analysis": result["analysis"], "meta": {**result["meta"], "response_cache": rc_meta}}


@router.post(
    "/compare",
    response_model=CompareResponse,
    dependencies=[Depends(rate_limit("analysis"))],
)
def compare_series(body: CompareRequest, request: Request) -> dict[str, Any]:
    """Analyses for several named series (e.g. packages on one chart), in request order."""
    request.state.series_count = len(body.lines)

    def compute() -> dict[str, Any]:
        return {
            "lines": [
                {
                    "name": line.name,
                    "analysis": compute_trend_analysis(line.series).to_dict(),
                    "meta": _series_meta(line.series),
                }
                for line in body.lines
            ]
        }

    try:
        result, rc_meta = _cached(request, "compare", body.model_dump(), compute)
    except Exception:
        logger.exception("trends/compare failed")
        raise HTTPException(status_code=500, detail="trends/compare failed")

    return {
        "lines": result["lines"],
        "meta": {"series_count": len(body.lines), "response_cache": rc_meta},
    }


@router.post(
    "/weekly",
    response_model=WeeklyResponse,
    dependencies=[Depends(rate_limit("other"))],
)
def weekly_buckets(body: WeeklyRequest) -> dict[str, Any]:
    """Sum a chronological daily series into contiguous buckets of bucket_size days."""
    buckets = aggregate_into_buckets([(d.day, d.downloads) for d in body.daily], body.bucket_size)
    return {
        "buckets": [
            {"period_start": b.period_start, "period_end": b.period_end, "total": b.total}
            for b in buckets
        ],
        "meta": {"days": len(body.daily), "bucket_size": body.bucket_size, "buckets": len(buckets)},
    }


@router.post(
    "/alt-text/line",
    response_model=AltTextResponse,
    dependencies=[Depends(rate_limit("analysis"))],
)
def line_chart_alt_text(body: LineAltTextRequest, request: Request) -> dict[str, Any]:
    """Alt text for a downloads line chart, rendered from the supplied message catalogue."""
    request.state.series_count = len(body.lines)
    config = TrendLineConfig(
        translate=catalog_translator(body.messages),
        number_formatter=grouped_number_formatter(body.number_decimals),
        formatted_dates=body.formatted_dates,
        has_estimation=body.has_estimation,
        formatted_dataset_values=body.formatted_dataset_values,
        granularity=body.granularity,
    )
    lines = [ChartSeries(name=line.name, series=line.series) for line in body.lines]
    return {"alt_text": create_alt_text_for_trend_line_chart(lines, config)}


@router.post(
    "/alt-text/versions",
    response_model=AltTextResponse,
    dependencies=[Depends(rate_limit("other"))],
)
def versions_chart_alt_text(body: VersionsAltTextRequest) -> dict[str, Any]:
    """Alt text for a per-version downloads bar chart."""
    config = VersionsBarConfig(
        translate=catalog_translator(body.messages),
        number_formatter=grouped_number_formatter(body.number_decimals),
        datapoint_labels=body.version_labels,
        date_range_label=body.date_range_label,
        semver_grouping_mode=body.semver_grouping_mode,
    )
    bars = [ChartSeries(name=body.package_name, series=body.downloads)]
    return {"alt_text": create_alt_text_for_versions_bar_chart(bars, config)}
