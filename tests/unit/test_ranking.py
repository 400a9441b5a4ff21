"""
Unit Tests - Percentile Ranking and Labels
"""
import polars as pl
import pytest

from rfm_segmentation.transformation.ranking import PercentileRanker, label_for, percent_rank


def _ranks(values, dtype=pl.Int64):
    df = pl.DataFrame({"v": values}, schema={"v": dtype})
    return df.select(percent_rank("v").alias("v"))["v"].to_list()


def _metrics(frequency, monetary, recency=None):
    n = len(frequency)
    return pl.DataFrame({
        "customer_id": list(range(1, n + 1)),
        "recency": recency if recency is not None else [None] * n,
        "frequency": frequency,
        "monetary": monetary,
    }, schema={
        "customer_id": pl.Int64,
        "recency": pl.Int64,
        "frequency": pl.Int64,
        "monetary": pl.Float64,
    })


class TestPercentRank:
    """Tests for percent_rank"""

    def test_distinct_values(self):
        assert _ranks([30, 10, 50, 20, 40]) == [0.5, 0.0, 1.0, 0.25, 0.75]

    def test_ties_share_the_minimum_rank(self):
        assert _ranks([5, 5, 1, 9]) == [0.33, 0.33, 0.0, 1.0]

    def test_nulls_rank_first(self):
        """A null has rank 0 and counts as lower for every non-null value"""
        assert _ranks([None, 10, 20], pl.Float64) == [0.0, 0.5, 1.0]

    def test_single_value(self):
        assert _ranks([42]) == [0.0]

    def test_rounding_is_half_up(self):
        """1/8 = 0.125 rounds to 0.13"""
        values = list(range(9))
        assert _ranks(values)[1] == 0.13

    def test_monotonic_in_value(self):
        values = [3, 8, 1, 8, 0, 12, 5, 5, 7, 2, 9, 4]
        ranks = _ranks(values)

        for a, ra in zip(values, ranks):
            for b, rb in zip(values, ranks):
                if a > b:
                    assert ra >= rb


class TestLabels:
    """Tests for label_for"""

    @pytest.mark.parametrize("rank,label", [
        (0.0, 1),
        (0.24, 1),
        (0.25, 2),
        (0.5, 2),
        (0.75, 2),
        (0.76, 3),
        (1.0, 3),
    ])
    def test_boundaries_are_inclusive_to_the_middle(self, rank, label):
        df = pl.DataFrame({"p": [rank]})
        assert df.select(label_for("p").alias("p"))["p"].to_list() == [label]

    def test_null_rank_has_null_label(self):
        df = pl.DataFrame({"p": [None]}, schema={"p": pl.Float64})
        assert df.select(label_for("p").alias("p"))["p"].to_list() == [None]


class TestPercentileRanker:
    """Tests for PercentileRanker"""

    def test_quartile_boundaries_get_label_two(self):
        """Five distinct values rank 0, 0.25, 0.5, 0.75, 1"""
        metrics = _metrics([1, 2, 3, 4, 5], [10.0, 20.0, 30.0, 40.0, 50.0])

        ranked = PercentileRanker().rank(metrics)

        assert ranked["percent_rank_frequency"].to_list() == [0.0, 0.25, 0.5, 0.75, 1.0]
        assert ranked["frequency_label"].to_list() == [1, 2, 2, 2, 3]
        assert ranked["monetary_label"].to_list() == [1, 2, 2, 2, 3]

    def test_recency_ranked_only_among_customers_with_recency(self):
        metrics = _metrics([1, 1, 1, 1], [1.0, 1.0, 1.0, 1.0], recency=[None, 40, None, 4])

        ranked = PercentileRanker().rank(metrics)

        assert ranked["percent_rank_recency"].to_list() == [None, 1.0, None, 0.0]
        assert ranked["recency_label"].to_list() == [None, 3, None, 1]

    def test_null_monetary_ranks_lowest(self):
        metrics = _metrics([0, 1, 2], [None, 10.0, 20.0])

        ranked = PercentileRanker().rank(metrics)

        assert ranked["monetary_label"].to_list() == [1, 2, 3]

    def test_frequency_and_monetary_labels_never_null(self):
        metrics = _metrics([0, 0, 0], [None, None, None])

        ranked = PercentileRanker().rank(metrics)

        assert ranked["frequency_label"].null_count() == 0
        assert ranked["monetary_label"].null_count() == 0

    def test_custom_thresholds(self):
        metrics = _metrics([1, 2, 3, 4, 5], [1.0, 2.0, 3.0, 4.0, 5.0])

        ranked = PercentileRanker(lower_threshold=0.5, upper_threshold=0.5).rank(metrics)

        assert ranked["frequency_label"].to_list() == [1, 1, 2, 3, 3]

    def test_preserves_customer_order(self):
        metrics = _metrics([5, 1, 3], [1.0, 2.0, 3.0], recency=[7, None, 2])

        ranked = PercentileRanker().rank(metrics)

        assert ranked["customer_id"].to_list() == [1, 2, 3]
