"""
Unit tests for the trending score engine.
"""

import math
from datetime import timedelta

import pytest

from conftest import NOW, build_item
from discovery.core.models import ScoringContext, TrendingConfig
from discovery.core.utils import compute_batch_maxima
from discovery.services.trending import (
    compute_freshness_score,
    compute_rating_score,
    compute_trending_score,
    get_trending_prompts,
    get_trending_prompts_with_scores,
    sort_by_trending,
)


CONTEXT = ScoringContext(max_views=1000, max_copies=500, max_saves=200, max_rating_count=50, now=NOW)


class TestComputeTrendingScore:
    """Test cases for single-item scoring."""

    def test_returns_breakdown_with_all_components(self):
        item = build_item()
        result = compute_trending_score(item, CONTEXT)

        assert result.prompt_id == item.id
        assert 0 < result.total_score <= 1
        assert result.weights == {
            "views": 0.25,
            "copies": 0.30,
            "saves": 0.15,
            "rating": 0.20,
            "freshness": 0.10,
        }

    def test_total_is_weighted_sum_of_components(self):
        result = compute_trending_score(build_item(), CONTEXT)
        c = result.components
        expected = (
            c.view_score * 0.25 +
            c.copy_score * 0.30 +
            c.save_score * 0.15 +
            c.rating_score * 0.20 +
            c.freshness_score * 0.10
        )
        assert result.total_score == pytest.approx(expected)

    def test_components_are_normalized_against_batch_maxima(self):
        item = build_item(views=250, copies=100, saves=50)
        c = compute_trending_score(item, CONTEXT).components

        assert c.view_score == pytest.approx(0.25)
        assert c.copy_score == pytest.approx(0.2)
        assert c.save_score == pytest.approx(0.25)

    def test_components_stay_within_unit_interval(self):
        items = [
            build_item(views=0, copies=0, saves=0, rating=0, rating_count=0, updated_at="2001-01-01T00:00:00Z"),
            build_item(views=5000, copies=9000, saves=900, rating=5, rating_count=500),
            build_item(views=1, copies=1, saves=1, rating=2.5, rating_count=1, updated_at=NOW - timedelta(weeks=52)),
            build_item(updated_at=NOW + timedelta(days=3)),
        ]
        for item in items:
            c = compute_trending_score(item, CONTEXT).components
            for value in (c.view_score, c.copy_score, c.save_score, c.rating_score, c.freshness_score):
                assert 0.0 <= value <= 1.0

    def test_zero_maxima_do_not_divide_by_zero(self):
        zero_ctx = ScoringContext(max_views=0, max_copies=0, max_saves=0, max_rating_count=0, now=NOW)
        result = compute_trending_score(build_item(views=0, copies=0, saves=0, rating_count=0), zero_ctx)

        assert result.components.view_score == 0.0
        assert result.total_score >= 0

    def test_custom_config_weights_are_used(self):
        config = TrendingConfig(
            views_weight=1.0, copies_weight=0.0, saves_weight=0.0, rating_weight=0.0, freshness_weight=0.0
        )
        result = compute_trending_score(build_item(views=500), CONTEXT, config)

        assert result.total_score == pytest.approx(0.5)
        assert result.weights["views"] == 1.0

    def test_does_not_mutate_item(self):
        item = build_item()
        before = (item.stats, item.tags, item.updated_at)
        compute_trending_score(item, CONTEXT)
        assert (item.stats, item.tags, item.updated_at) == before


class TestFreshness:
    """Test cases for the time decay component."""

    def test_brand_new_item_has_full_freshness(self):
        assert compute_freshness_score(NOW, NOW) == pytest.approx(1.0)

    def test_halves_after_four_weeks(self):
        updated = NOW - timedelta(weeks=4)
        assert compute_freshness_score(updated, NOW) == pytest.approx(0.55)

    def test_strictly_decreases_as_time_passes(self):
        scores = [compute_freshness_score(NOW, NOW + timedelta(weeks=w)) for w in range(0, 60, 3)]
        for newer, older in zip(scores, scores[1:]):
            assert older < newer
        assert all(s >= 0.1 for s in scores)

    def test_very_old_content_keeps_floor(self):
        score = compute_freshness_score("2000-01-01T00:00:00Z", NOW)
        assert 0.1 <= score < 0.1001

    def test_accepts_iso_strings(self):
        iso = (NOW - timedelta(weeks=8)).isoformat().replace("+00:00", "Z")
        assert compute_freshness_score(iso, NOW) == pytest.approx(0.325)

    def test_naive_datetimes_are_treated_as_utc(self):
        naive = (NOW - timedelta(weeks=4)).replace(tzinfo=None)
        assert compute_freshness_score(naive, NOW) == pytest.approx(0.55)

    @pytest.mark.parametrize("bad_value", ["invalid-date", "", None])
    def test_unreadable_timestamp_counts_as_stale(self, bad_value):
        assert compute_freshness_score(bad_value, NOW) == 0.1

    def test_invalid_date_keeps_total_finite(self):
        result = compute_trending_score(build_item(updated_at="invalid-date"), CONTEXT)
        assert result.components.freshness_score == 0.1
        assert math.isfinite(result.total_score)


class TestRatingScore:
    """Test cases for the confidence-weighted rating blend."""

    def test_no_ratings_falls_back_to_prior(self):
        assert compute_rating_score(5.0, 0, 100) == pytest.approx(0.6)

    def test_full_confidence_uses_raw_rating(self):
        assert compute_rating_score(5.0, 100, 100) == 1.0

    def test_more_ratings_move_score_toward_raw_rating(self):
        few = compute_rating_score(5.0, 1, 50)
        many = compute_rating_score(5.0, 50, 50)
        assert few < many

    def test_single_five_star_does_not_beat_many_four_stars(self):
        single = compute_rating_score(5.0, 1, 400)
        many = compute_rating_score(4.0, 400, 400)
        assert single < many


class TestGetTrendingPrompts:
    """Test cases for trending list generation."""

    def test_sorted_by_trending_score(self):
        low = build_item("low", views=1, copies=0, saves=0, rating=1, rating_count=0, updated_at="2025-01-01T00:00:00Z")
        high = build_item("high", views=1000, copies=500, saves=200, rating=5, rating_count=50)

        result = get_trending_prompts([low, high], now=NOW)
        assert [p.id for p in result] == ["high", "low"]

    def test_quality_and_freshness_beat_stale_low_confidence_item(self):
        a = build_item("A", views=100, copies=50, saves=10, rating=4.5, rating_count=20, updated_at=NOW)
        b = build_item("B", views=10, copies=5, saves=1, rating=5, rating_count=1, updated_at=NOW - timedelta(weeks=8))

        result = get_trending_prompts([b, a], now=NOW)
        assert [p.id for p in result] == ["A", "B"]

        scores = dict((item.id, score) for item, score in get_trending_prompts_with_scores([a, b], now=NOW))
        assert scores["A"].total_score == pytest.approx(0.98)
        assert scores["B"].components.freshness_score == pytest.approx(0.325)
        assert scores["B"].components.rating_score < 0.7

    def test_limit(self):
        items = [build_item(f"p{i}", views=(i + 1) * 10) for i in range(10)]

        assert len(get_trending_prompts(items, limit=3, now=NOW)) == 3
        assert len(get_trending_prompts(items, limit=50, now=NOW)) == 10

    def test_category_filter(self):
        automation = build_item("w", category="automation")
        debugging = build_item("c", category="debugging")

        result = get_trending_prompts([automation, debugging], category="automation", now=NOW)
        assert [p.id for p in result] == ["w"]

    def test_excluded_ids_never_returned(self):
        items = [build_item(f"p{i}") for i in range(5)]
        result = get_trending_prompts(items, exclude_ids=["p1", "p3"], now=NOW)

        assert {p.id for p in result} == {"p0", "p2", "p4"}

    def test_min_score_filter(self):
        low = build_item("low", views=0, copies=0, saves=0, rating=0, rating_count=0, updated_at="2020-01-01T00:00:00Z")
        high = build_item("high", views=1000, copies=500, saves=200, rating=5, rating_count=50)

        result = get_trending_prompts([low, high], min_score=0.5, now=NOW)
        assert [p.id for p in result] == ["high"]

    def test_maxima_come_from_unfiltered_pool(self):
        small = build_item("small", category="a", views=10)
        large = build_item("large", category="b", views=100)

        ranked = get_trending_prompts_with_scores([small, large], category="a", now=NOW)
        assert len(ranked) == 1
        assert ranked[0][1].components.view_score == pytest.approx(0.1)

    def test_deterministic_for_fixed_clock(self):
        items = [build_item(f"p{i}", views=i * 7 % 11, copies=i * 3 % 5, updated_at=NOW - timedelta(days=i)) for i in range(12)]

        first = [p.id for p in get_trending_prompts(items, now=NOW)]
        second = [p.id for p in get_trending_prompts(items, now=NOW)]
        assert first == second

    def test_ties_keep_input_order(self):
        items = [build_item(f"tie{i}") for i in range(4)]
        assert [p.id for p in get_trending_prompts(items, now=NOW)] == ["tie0", "tie1", "tie2", "tie3"]

    def test_empty_pool(self):
        assert get_trending_prompts([], now=NOW) == []

    def test_default_clock(self):
        assert len(get_trending_prompts([build_item()])) == 1


class TestTrendingWithScores:
    """Test cases for trending lists with score breakdowns."""

    def test_returns_pairs(self):
        item = build_item()
        result = get_trending_prompts_with_scores([item], now=NOW)

        assert len(result) == 1
        returned, score = result[0]
        assert returned is item
        assert score.total_score > 0

    def test_limit_and_category(self):
        items = [build_item(category="automation") for _ in range(3)] + [build_item(category="debugging")]

        assert len(get_trending_prompts_with_scores(items, limit=2, now=NOW)) == 2
        assert len(get_trending_prompts_with_scores(items, category="debugging", now=NOW)) == 1


class TestSortByTrending:
    """Test cases for the sort helper."""

    def test_sorts_descending(self):
        low = build_item("low", views=1, copies=0, saves=0, rating=1, rating_count=0, updated_at="2025-01-01T00:00:00Z")
        high = build_item("high", views=500, copies=200, saves=100, rating=5, rating_count=30)

        assert [p.id for p in sort_by_trending([low, high], NOW)] == ["high", "low"]

    def test_matches_unfiltered_trending(self):
        items = [build_item(f"p{i}", copies=i) for i in range(6)]
        assert sort_by_trending(items, NOW) == get_trending_prompts(items, now=NOW)

    def test_empty(self):
        assert sort_by_trending([]) == []


def test_batch_maxima_are_floored_at_one():
    context = compute_batch_maxima([build_item(views=0, copies=0, saves=0, rating_count=0)], NOW)
    assert (context.max_views, context.max_copies, context.max_saves, context.max_rating_count) == (1, 1, 1, 1)
