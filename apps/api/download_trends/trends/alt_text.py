"""
Accessible alt text for the downloads charts.

Builds sentences from trend analyses through caller-supplied callbacks: `translate(key, named)`
resolves message keys and `number_formatter(value)` renders numbers. Nothing here is localized.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from download_trends.trends.analysis import compute_trend_analysis

Translate = Callable[..., str]
NumberFormatter = Callable[[float], str]

GRANULARITY_KEYS: dict[str, str] = {
    "daily": "package.trends.granularity_daily",
    "weekly": "package.trends.granularity_weekly",
    "monthly": "package.trends.granularity_monthly",
    "yearly": "package.trends.granularity_yearly",
}
DEFAULT_GRANULARITY_KEY = GRANULARITY_KEYS["weekly"]

TREND_KEYS: dict[str, str] = {
    "none": "package.trends.copy_alt.trend_none",
    "weak": "package.trends.copy_alt.trend_weak",
    "strong": "package.trends.copy_alt.trend_strong",
    "undefined": "package.trends.copy_alt.trend_undefined",
}

WATERMARK_KEY = "package.trends.copy_alt.watermark"


@dataclass
class ChartSeries:
    name: str
    series: list[float | None] = field(default_factory=list)


@dataclass
class TrendLineConfig:
    translate: Translate
    number_formatter: NumberFormatter
    formatted_dates: list[str] = field(default_factory=list)
    has_estimation: bool = False
    formatted_dataset_values: list[list[str]] = field(default_factory=list)
    granularity: str = "weekly"


@dataclass
class VersionsBarConfig:
    translate: Translate
    number_formatter: NumberFormatter
    datapoint_labels: list[str] = field(default_factory=list)
    date_range_label: str | None = None
    semver_grouping_mode: str = "major"


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def catalog_translator(messages: dict[str, str]) -> Translate:
    """
    Translate callback over a flat key -> template catalogue.

    Templates use {named} placeholders; unknown keys render as the key and unknown
    placeholders are left as-is. Malformed templates, and field lookups such as
    {package.title} or {count[0]} that the value does not support, are returned unformatted.
    """

    def translate(key: str, named: dict[str, Any] | None = None) -> str:
        template = messages.get(key)
        if template is None:
            return key
        try:
            return template.format_map(_KeepMissing(named or {}))
        except (ValueError, IndexError, KeyError, AttributeError, TypeError):
            return template

    return translate


def grouped_number_formatter(decimals: int = 0) -> NumberFormatter:
    """1234567.8 -> '1,234,568' (decimals=0)."""
    return lambda value: f"{value:,.{decimals}f}"


def _first_or(values: Sequence[Any] | None, default: Any) -> Any:
    return values[0] if values else default


def _last_or(values: Sequence[Any] | None, default: Any) -> Any:
    return values[-1] if values else default


def create_alt_text_for_trend_line_chart(
    lines: Sequence[ChartSeries] | None,
    config: TrendLineConfig,
) -> str:
    """
    Describe a downloads line chart: date range, granularity and, per package,
    first/last value, trend class and slope. None dataset returns "".
    """
    if lines is None:
        return ""
    t = config.translate

    analyses = [(line.name, compute_trend_analysis(line.series)) for line in lines]

    granularity_key = GRANULARITY_KEYS.get(config.granularity, DEFAULT_GRANULARITY_KEY)
    granularity = str(t(granularity_key)).lower()

    parts: list[str] = []
    for i, (name, analysis) in enumerate(analyses):
        trend_key = TREND_KEYS.get(analysis.interpretation.trend, TREND_KEYS["undefined"])
        values = config.formatted_dataset_values[i] if i < len(config.formatted_dataset_values) else None
        parts.append(
            t(
                "package.trends.copy_alt.analysis",
                {
                    "package_name": name,
                    "start_value": _first_or(values, 0),
                    "end_value": _last_or(values, 0),
                    "trend": t(trend_key),
                    "downloads_slope": config.number_formatter(analysis.slope),
                },
            )
        )
    packages_analysis = ", ".join(parts)

    is_single_package = len(analyses) == 1

    estimation_notice = ""
    if config.has_estimation:
        key = "package.trends.copy_alt.estimation" if is_single_package else "package.trends.copy_alt.estimations"
        estimation_notice = f" {t(key)}"

    if is_single_package:
        prefix = t("package.trends.copy_alt.single_package", {"package": analyses[0][0]})
    else:
        prefix = t("package.trends.copy_alt.compare", {"packages": ", ".join(name for name, _ in analyses)})

    general = t(
        "package.trends.copy_alt.general_description",
        {
            "start_date": _first_or(config.formatted_dates, "-") if analyses else "-",
            "end_date": _last_or(config.formatted_dates, "-") if analyses else "-",
            "granularity": granularity,
            "packages_analysis": packages_analysis,
            "watermark": t(WATERMARK_KEY),
            "estimation_notice": estimation_notice,
        },
    )
    return f"{prefix} {general}"


def create_alt_text_for_versions_bar_chart(
    bars: Sequence[ChartSeries] | None,
    config: VersionsBarConfig,
) -> str:
    """
    Describe a per-version downloads bar chart. The most downloaded version is called
    out; the others are listed newest first. Missing values count as 0.
    """
    if bars is None:
        return ""
    t = config.translate

    series = bars[0].series if bars else []
    versions = []
    for index, value in enumerate(series):
        raw = value or 0
        versions.append(
            {
                "index": index,
                "name": config.datapoint_labels[index] if index < len(config.datapoint_labels) else "-",
                "raw_downloads": raw,
                "downloads": config.number_formatter(raw),
            }
        )

    top = None
    for v in versions:
        if top is None or v["raw_downloads"] > top["raw_downloads"]:
            top = v

    per_version_analysis = ", ".join(
        t(
            "package.versions.copy_alt.per_version_analysis",
            {"version": v["name"], "downloads": v["downloads"]},
        )
        for v in reversed(versions)
        if top is None or v["index"] != top["index"]
    )

    if config.semver_grouping_mode == "major":
        grouping = t("package.versions.grouping_major")
    else:
        grouping = t("package.versions.grouping_minor")

    return t(
        "package.versions.copy_alt.general_description",
        {
            "package_name": bars[0].name if bars else "-",
            "versions_count": len(versions),
            "semver_grouping_mode": str(grouping).lower(),
            "first_version": versions[0]["name"] if versions else "-",
            "last_version": versions[-1]["name"] if versions else "-",
            "date_range_label": config.date_range_label or "-",
            "max_downloaded_version": top["name"] if top else "-",
            "max_version_downloads": top["downloads"] if top else "-",
            "per_version_analysis": per_version_analysis,
            "watermark": t(WATERMARK_KEY),
        },
    )
