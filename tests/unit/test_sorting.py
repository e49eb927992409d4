"""
Unit tests for score composition, ordering and pagination.
"""

import random

import pytest

from dayplay_feed.config.settings import ScoreComposition
from dayplay_feed.feed.models import FeedPage
from dayplay_feed.feed.pagination import Paginator
from dayplay_feed.feed.sorting import ScoreComposer, SortComposer


class FixedScorer:
    def __init__(self, scores):
        self.scores = scores

    def score(self, listing):
        return self.scores.get(listing.id, 1)


# =============================================================================
# ScoreComposer
# =============================================================================

class TestScoreComposer:
    """Tests for each deployment composition rule."""

    @pytest.fixture
    def listing(self, listing_factory):
        return listing_factory("a")

    @pytest.mark.parametrize("composition,expected", [
        (ScoreComposition.AFFINITY_PLUS_TRENDING, 4 + 5),
        (ScoreComposition.AFFINITY, 4),
        (ScoreComposition.TRENDING, 5),
        (ScoreComposition.NONE, 0),
    ])
    def test_compositions(self, listing, composition, expected):
        composer = ScoreComposer(composition, FixedScorer({"a": 4}), {"a": 5})

        assert composer.score(listing) == expected

    def test_missing_trending_bonus_is_zero(self, listing):
        composer = ScoreComposer(ScoreComposition.AFFINITY_PLUS_TRENDING, FixedScorer({"a": 2}))

        assert composer.score(listing) == 2

    def test_annotate_sets_rank_score(self, listing_factory):
        listings = [listing_factory("a"), listing_factory("b")]
        composer = ScoreComposer(ScoreComposition.AFFINITY, FixedScorer({"a": 7, "b": 2}))

        annotated = composer.annotate(listings)

        assert [l.rank_score for l in annotated] == [7, 2]
        assert [l.rank_score for l in listings] == [0, 0]


# =============================================================================
# SortComposer
# =============================================================================

class TestSortComposer:
    """Tests for the strict feed order."""

    def test_featured_beats_everything(self, listing_factory):
        featured = listing_factory("f", is_featured=True, rank_score=0, distance_km=40.0, title="Zzz")
        best = listing_factory("b", rank_score=99, distance_km=0.1, title="Aaa")

        assert [l.id for l in SortComposer.sort([best, featured])] == ["f", "b"]

    def test_higher_score_first(self, listing_factory):
        low = listing_factory("low", rank_score=1, distance_km=0.1)
        high = listing_factory("high", rank_score=5, distance_km=9.0)

        assert [l.id for l in SortComposer.sort([low, high])] == ["high", "low"]

    def test_closer_first_on_equal_score(self, listing_factory):
        far = listing_factory("far", distance_km=8.0)
        near = listing_factory("near", distance_km=1.5)

        assert [l.id for l in SortComposer.sort([far, near])] == ["near", "far"]

    def test_unknown_distance_last(self, listing_factory):
        unknown = listing_factory("unknown", distance_km=None, title="A")
        known = listing_factory("known", distance_km=14.9, title="Z")

        assert [l.id for l in SortComposer.sort([unknown, known])] == ["known", "unknown"]

    def test_title_then_id(self, listing_factory):
        b = listing_factory("id-2", title="same")
        a = listing_factory("id-1", title="Same")
        c = listing_factory("id-0", title="Another")

        assert [l.id for l in SortComposer.sort([b, a, c])] == ["id-0", "id-1", "id-2"]

    def test_stable_under_permutation(self, listing_factory):
        listings = [
            listing_factory(
                f"l{i}",
                title=f"T{i % 3}",
                rank_score=i % 4,
                distance_km=None if i % 5 == 0 else float(i % 7),
                is_featured=i % 6 == 0,
            )
            for i in range(30)
        ]
        expected = [l.id for l in SortComposer.sort(listings)]
        rng = random.Random(5)

        for _ in range(20):
            shuffled = listings[:]
            rng.shuffle(shuffled)
            assert [l.id for l in SortComposer.sort(shuffled)] == expected


# =============================================================================
# Paginator
# =============================================================================

class TestPaginator:
    """Tests for Paginator.page."""

    @pytest.fixture
    def ordered(self, listing_factory):
        return [listing_factory(f"l{i:02d}") for i in range(45)]

    def test_first_page(self, ordered):
        page = Paginator.page(ordered, 0, 20)

        assert isinstance(page, FeedPage)
        assert page.ids == [f"l{i:02d}" for i in range(20)]
        assert page.total == 45

    def test_last_partial_page(self, ordered):
        page = Paginator.page(ordered, 2, 20)

        assert len(page.items) == 5
        assert page.total == 45

    def test_out_of_range(self, ordered):
        page = Paginator.page(ordered, 10, 20)

        assert page.items == []
        assert page.total == 45

    def test_empty(self):
        page = Paginator.page([], 0, 20)

        assert page.items == []
        assert page.total == 0

    @pytest.mark.parametrize("size", [1, 7, 20, 45, 100])
    def test_pages_partition_total(self, ordered, size):
        seen = []
        index = 0
        while True:
            page = Paginator.page(ordered, index, size)
            if not page.items:
                break
            seen.extend(page.ids)
            index += 1

        assert seen == [l.id for l in ordered]
        assert len(set(seen)) == page.total

    def test_rejects_negative_index(self, ordered):
        with pytest.raises(ValueError):
            Paginator.page(ordered, -1, 20)

    @pytest.mark.parametrize("size", [0, -5])
    def test_rejects_non_positive_size(self, ordered, size):
        with pytest.raises(ValueError):
            Paginator.page(ordered, 0, size)
