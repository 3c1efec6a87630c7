"""
/trends endpoints: analysis, compare, weekly buckets and alt text.
"""
import pytest
from fastapi.testclient import TestClient

from download_trends.main import app

client = TestClient(app)


def test_analysis_perfect_line():
    r = client.post("/trends/analysis", json={"series": [10, 20, 30, 40]})
    assert r.status_code == 200
    data = r.json()
    analysis = data["analysis"]
    assert analysis["mean"] == 25
    assert analysis["slope"] == pytest.approx(10)
    assert analysis["r_squared"] == pytest.approx(1)
    assert analysis["interpretation"] == {"volatility": "volatile", "trend": "strong"}
    meta = data["meta"]
    assert meta["points"] == 4
    assert meta["valid_points"] == 4
    assert meta["winsorized"] is False


def test_analysis_nulls_keep_time_axis():
    r = client.post("/trends/analysis", json={"series": [10, None, 30, None, 50]})
    assert r.status_code == 200
    data = r.json()
    assert data["analysis"]["slope"] == pytest.approx(10)
    assert data["meta"]["points"] == 5
    assert data["meta"]["valid_points"] == 3


def test_analysis_empty_series_returns_nulls_not_nan():
    r = client.post("/trends/analysis", json={"series": []})
    assert r.status_code == 200
    analysis = r.json()["analysis"]
    assert analysis["coefficient_of_variation"] is None
    assert analysis["r_squared"] is None
    assert analysis["interpretation"] == {"volatility": "undefined", "trend": "undefined"}


def test_analysis_winsorized_flag_at_twenty_points():
    r = client.post("/trends/analysis", json={"series": list(range(1, 21))})
    assert r.status_code == 200
    assert r.json()["meta"]["winsorized"] is True


def test_analysis_rejects_non_numeric_values():
    r = client.post("/trends/analysis", json={"series": [1, "abc", 3]})
    assert r.status_code == 422


def test_analysis_rejects_missing_body_field():
    r = client.post("/trends/analysis", json={})
    assert r.status_code == 422


@pytest.mark.parametrize("value", [1e308, -1e308, 2e15])
def test_analysis_rejects_values_beyond_max_magnitude(value):
    r = client.post("/trends/analysis", json={"series": [value, value]})
    assert r.status_code == 422


def test_analysis_accepts_values_at_max_magnitude():
    r = client.post("/trends/analysis", json={"series": [1e15, -1e15, 1e15]})
    assert r.status_code == 200
    analysis = r.json()["analysis"]
    for key in ("mean", "standard_deviation", "slope"):
        assert analysis[key] is not None


def test_weekly_rejects_downloads_beyond_max_magnitude():
    body = {"daily": [{"day": "2026-03-01", "downloads": 1e308}]}
    assert client.post("/trends/weekly", json=body).status_code == 422


def test_analysis_second_identical_request_hits_cache():
    body = {"series": [3, 1, 4, 1, 5, 9, 2, 6]}
    r1 = client.post("/trends/analysis", json=body)
    r2 = client.post("/trends/analysis", json=body)
    assert r1.status_code == 200 and r2.status_code == 200
    rc1 = r1.json()["meta"]["response_cache"]
    rc2 = r2.json()["meta"]["response_cache"]
    assert rc1["hit"] is False
    assert rc2["hit"] is True
    assert rc1["key_hash"] == rc2["key_hash"]
    assert r1.json()["analysis"] == r2.json()["analysis"]


def test_analysis_different_series_miss():
    r1 = client.post("/trends/analysis", json={"series": [1, 2, 3]})
    r2 = client.post("/trends/analysis", json={"series": [1, 2, 4]})
    h1 = r1.json()["meta"]["response_cache"]["key_hash"]
    h2 = r2.json()["meta"]["response_cache"]["key_hash"]
    assert h1 != h2


def test_compare_returns_lines_in_order():
    body = {
        "lines": [
            {"name": "nuxt", "series": [10, 20, 30, 40]},
            {"name": "svelte", "series": [40, 30, 20, 10]},
        ]
    }
    r = client.post("/trends/compare", json=body)
    assert r.status_code == 200
    data = r.json()
    assert [line["name"] for line in data["lines"]] == ["nuxt", "svelte"]
    assert data["lines"][0]["analysis"]["slope"] == pytest.approx(10)
    assert data["lines"][1]["analysis"]["slope"] == pytest.approx(-10)
    assert data["meta"]["series_count"] == 2
    assert "response_cache" in data["meta"]


def test_compare_rejects_duplicate_names():
    body = {"lines": [{"name": "vue", "series": [1]}, {"name": " vue ", "series": [2]}]}
    r = client.post("/trends/compare", json=body)
    assert r.status_code == 422


def test_compare_requires_at_least_one_line():
    r = client.post("/trends/compare", json={"lines": []})
    assert r.status_code == 422


def test_weekly_nine_days_two_buckets():
    daily = [{"day": f"2026-03-{d:02d}", "downloads": 10} for d in range(1, 10)]
    r = client.post("/trends/weekly", json={"daily": daily})
    assert r.status_code == 200
    data = r.json()
    assert data["buckets"] == [
        {"period_start": "2026-03-01", "period_end": "2026-03-07", "total": 70},
        {"period_start": "2026-03-08", "period_end": "2026-03-09", "total": 20},
    ]
    assert data["meta"] == {"days": 9, "bucket_size": 7, "buckets": 2}


def test_weekly_rejects_bad_bucket_size_and_negative_downloads():
    assert client.post("/trends/weekly", json={"daily": [], "bucket_size": 0}).status_code == 422
    bad = {"daily": [{"day": "2026-03-01", "downloads": -1}]}
    assert client.post("/trends/weekly", json=bad).status_code == 422


def test_line_alt_text_uses_message_catalogue():
    body = {
        "lines": [{"name": "nuxt", "series": [10, 20, 30, 40]}],
        "formatted_dates": ["Mar 1", "Mar 22"],
        "formatted_dataset_values": [["10", "40"]],
        "granularity": "weekly",
        "messages": {
            "package.trends.copy_alt.single_package": "Downloads of {package}.",
            "package.trends.granularity_weekly": "Weekly",
            "package.trends.copy_alt.trend_strong": "a strong trend",
            "package.trends.copy_alt.analysis": "{package_name} went from {start_value} to {end_value} with {trend} ({downloads_slope}/step)",
            "package.trends.copy_alt.general_description": "From {start_date} to {end_date} ({granularity}): {packages_analysis}.{estimation_notice}",
        },
    }
    r = client.post("/trends/alt-text/line", json=body)
    assert r.status_code == 200
    assert r.json()["alt_text"] == (
        "Downloads of nuxt. From Mar 1 to Mar 22 (weekly): "
        "nuxt went from 10 to 40 with a strong trend (10/step)."
    )


def test_versions_alt_text_falls_back_to_keys():
    body = {
        "package_name": "vue",
        "downloads": [100, None, 300],
        "version_labels": ["1.x", "2.x", "3.x"],
    }
    r = client.post("/trends/alt-text/versions", json=body)
    assert r.status_code == 200
    assert r.json()["alt_text"] == "package.versions.copy_alt.general_description"


def test_request_id_header_on_trends_endpoints():
    r = client.post("/trends/analysis", json={"series": [1]}, headers={"X-Request-ID": "req-42"})
    assert r.headers.get("X-Request-ID") == "req-42"


def test_line_alt_text_with_unsupported_placeholder_lookups():
    body = {
        "lines": [{"name": "nuxt", "series": [10, 20, 30, 40]}],
        "messages": {
            "package.trends.copy_alt.single_package": "Downloads of {package.title_case}.",
            "package.trends.copy_alt.general_description": "{estimation_notice.title_case} {packages_analysis}",
        },
    }
    r = client.post("/trends/alt-text/line", json=body)
    assert r.status_code == 200
    assert r.json()["alt_text"] == "Downloads of {package.title_case}. {estimation_notice.title_case} {packages_analysis}"


def test_versions_alt_text_with_unsupported_placeholder_lookups():
    body = {
        "package_name": "vue",
        "downloads": [100, 300],
        "version_labels": ["2.x", "3.x"],
        "messages": {"package.versions.copy_alt.general_description": "{versions_count[0]} versions"},
    }
    r = client.post("/trends/alt-text/versions", json=body)
    assert r.status_code == 200
    assert r.json()["alt_text"] == "{versions_count[0]} versions"
