"""
Tests for median-Z outlier picking, thresholding and the burden filter.
"""

import numpy as np
import pandas as pd
import pytest

from medzoutliers.quality.outliers import (
    MedianZOutlierCaller,
    call_outliers,
    count_outliers_per_individual,
    filter_to_individuals,
    passing_individuals,
    pick_outliers,
    sort_by_magnitude,
    threshold_picks,
)


def _frames(z_rows, genes=None, samples=("A", "B", "C"), counts=None):
    z = np.asarray(z_rows, dtype=float)
    genes = genes or [f"G{i + 1}" for i in range(z.shape[0])]
    zscores = pd.DataFrame(z, index=genes, columns=list(samples))
    if counts is None:
        counts = np.where(np.isnan(z), 0, 5)
    counts = pd.DataFrame(np.asarray(counts, dtype=np.int64), index=genes, columns=list(samples))
    return zscores, counts


def _burden_frames(n_genes_for_x: int, n_other: int = 5):
    """Individual X carries the top |Z| for ``n_genes_for_x`` genes; Y and Z share the rest."""
    rows, genes = [], []
    for i in range(n_genes_for_x):
        rows.append([3.0 + i / 1000, 0.1, 0.2])
        genes.append(f"X{i:03d}")
    for i in range(n_other):
        rows.append([0.1, 2.5, 0.5])
        genes.append(f"Y{i:03d}")
    # sub-threshold picks for X and Z
    rows.append([1.5, 0.1, 0.2])
    genes.append("LOWX")
    rows.append([0.1, 0.2, -1.2])
    genes.append("LOWZ")
    return _frames(rows, genes=genes, samples=("X", "Y", "Z"))


class TestPickOutliers:
    """Test the per-gene argmax-by-|Z| reduction."""

    def test_picks_largest_magnitude(self):
        zscores, counts = _frames([[1.0, -4.0, 3.0], [0.5, 0.2, 0.7]])

        picks = pick_outliers(zscores, counts)

        assert picks["GENE"].tolist() == ["G1", "G2"]
        assert picks["INDS"].tolist() == ["B", "C"]
        assert picks["Z"].tolist() == [-4.0, 0.7]

    def test_tie_goes_to_first_column(self):
        """|Z| ties resolve to the lowest column index, regardless of sign."""
        zscores, counts = _frames([[1.0, -3.0, 3.0], [2.0, 2.0, -2.0]])

        picks = pick_outliers(zscores, counts)

        assert picks["INDS"].tolist() == ["B", "A"]
        assert picks["Z"].tolist() == [-3.0, 2.0]

    def test_missing_values_ignored(self):
        zscores, counts = _frames([[np.nan, 1.0, np.nan]])

        picks = pick_outliers(zscores, counts)

        assert picks["INDS"].tolist() == ["B"]
        assert picks["Z"].tolist() == [1.0]

    def test_all_missing_row_dropped(self):
        zscores, counts = _frames([[np.nan, np.nan, np.nan], [0.0, -0.5, 0.1]])

        picks = pick_outliers(zscores, counts)

        assert picks["GENE"].tolist() == ["G2"]
        assert picks["INDS"].tolist() == ["B"]

    def test_dfs_from_count_matrix(self):
        zscores, counts = _frames([[1.0, 9.0, 3.0]], counts=[[5, 12, 7]])

        picks = pick_outliers(zscores, counts)

        assert picks["DFS"].tolist() == [12]
        assert picks["DFS"].dtype == np.int64

    def test_picked_magnitude_is_row_maximum(self):
        rng = np.random.RandomState(0)
        z = rng.randn(30, 6)
        z[rng.rand(30, 6) < 0.4] = np.nan
        samples = [f"S{i}" for i in range(6)]
        zscores, counts = _frames(z, samples=samples)

        picks = pick_outliers(zscores, counts).set_index("GENE")

        for gene, row in zscores.iterrows():
            if row.isna().all():
                assert gene not in picks.index
                continue
            assert abs(picks.loc[gene, "Z"]) == np.nanmax(np.abs(row.to_numpy()))

    def test_columns_reordered_to_canonical(self):
        zscores, counts = _frames([[2.0, 2.0, 0.0]])

        picks = pick_outliers(zscores, counts, sample_ids=["B", "A", "C"])

        assert picks["INDS"].tolist() == ["B"]

    def test_misaligned_matrices(self):
        zscores, counts = _frames([[1.0, 2.0, 3.0]])
        counts.index = ["OTHER"]
        with pytest.raises(ValueError, match="same gene index"):
            pick_outliers(zscores, counts)

    def test_missing_sample_column(self):
        zscores, counts = _frames([[1.0, 2.0, 3.0]])
        with pytest.raises(ValueError, match="missing sample columns"):
            pick_outliers(zscores, counts, sample_ids=["A", "B", "C", "D"])

    def test_empty_matrix(self):
        zscores, counts = _frames(np.empty((0, 3)))

        picks = pick_outliers(zscores, counts)

        assert picks.empty
        assert list(picks.columns) == ["GENE", "INDS", "DFS", "Z"]


class TestThresholdAndSort:
    """Test thresholding and the stable |Z| sort."""

    def test_threshold_is_inclusive(self):
        picks = pd.DataFrame({
            "GENE": ["G1", "G2", "G3"],
            "INDS": ["A", "B", "C"],
            "DFS": [5, 5, 5],
            "Z": [2.0, -1.99, -2.0],
        })

        kept = threshold_picks(picks, 2.0)

        assert kept["GENE"].tolist() == ["G1", "G3"]

    def test_sorted_descending_magnitude(self):
        picks = pd.DataFrame({
            "GENE": ["G1", "G2", "G3"],
            "INDS": ["A", "B", "C"],
            "DFS": [5, 5, 5],
            "Z": [2.5, -4.0, 3.0],
        })

        kept = threshold_picks(picks, 2.0)

        assert kept["GENE"].tolist() == ["G2", "G3", "G1"]

    def test_ties_keep_gene_order(self):
        picks = pd.DataFrame({
            "GENE": ["G1", "G2", "G3", "G4"],
            "INDS": ["A", "B", "C", "A"],
            "DFS": [5, 5, 5, 5],
            "Z": [3.0, -3.0, 5.0, 3.0],
        })

        ordered = sort_by_magnitude(picks)

        assert ordered["GENE"].tolist() == ["G3", "G1", "G2", "G4"]
        assert ordered.index.tolist() == [0, 1, 2, 3]


class TestBurdenFilter:
    """Test per-individual counting and exclusion."""

    def test_counts_cover_all_individuals(self):
        picks = pd.DataFrame({"GENE": ["G1", "G2"], "INDS": ["C", "C"], "DFS": [5, 5], "Z": [3.0, 2.0]})

        counts = count_outliers_per_individual(picks, ["A", "B", "C"])

        assert counts.index.tolist() == ["A", "B", "C"]
        assert counts.tolist() == [0, 0, 2]

    def test_cap_is_exclusive(self):
        counts = pd.Series([49, 50, 51, 0], index=["A", "B", "C", "D"])

        assert passing_individuals(counts, 50) == ["A", "D"]

    def test_filter_to_individuals_keeps_order(self):
        picks = pd.DataFrame({"GENE": ["G1", "G2", "G3"], "INDS": ["A", "B", "A"], "DFS": [5, 5, 5], "Z": [1, 2, 3]})

        kept = filter_to_individuals(picks, ["A"])

        assert kept["GENE"].tolist() == ["G1", "G3"]

    def test_individual_with_51_outliers_excluded(self):
        zscores, counts = _burden_frames(n_genes_for_x=51)

        result = call_outliers(zscores, counts)

        assert result.excluded_individuals == ["X"]
        assert "X" not in result.passing_individuals
        assert "X" not in set(result.thresholded["INDS"])
        assert "X" not in set(result.unthresholded["INDS"])
        assert result.counts_per_individual["X"] == 51
        assert result.passing_individuals == ["Y", "Z"]

    def test_individual_with_49_outliers_kept(self):
        zscores, counts = _burden_frames(n_genes_for_x=49)

        result = call_outliers(zscores, counts)

        assert result.excluded_individuals == []
        assert (result.thresholded["INDS"] == "X").sum() == 49
        assert result.passing_individuals == ["X", "Y", "Z"]

    def test_exactly_cap_outliers_excluded(self):
        zscores, counts = _burden_frames(n_genes_for_x=3, n_other=1)

        result = call_outliers(zscores, counts, max_outliers=3)

        assert result.excluded_individuals == ["X"]

    def test_counts_reported_before_filtering(self):
        zscores, counts = _burden_frames(n_genes_for_x=51)

        result = call_outliers(zscores, counts)

        assert result.counts_per_individual.to_dict() == {"X": 51, "Y": 5, "Z": 0}
        assert len(result.thresholded) == 5

    def test_filter_is_idempotent(self):
        """No individual left in the filtered table reaches the cap."""
        zscores, counts = _burden_frames(n_genes_for_x=60, n_other=6)

        result = call_outliers(zscores, counts, max_outliers=7)

        recount = count_outliers_per_individual(result.thresholded, zscores.columns)
        assert (recount < 7).all()
        again = filter_to_individuals(result.thresholded, passing_individuals(recount, 7))
        pd.testing.assert_frame_equal(again, result.thresholded)


class TestUnthresholdedTable:
    """Test the filter-then-sort table of all picks."""

    def test_includes_sub_threshold_picks_of_passing_individuals(self):
        zscores, counts = _burden_frames(n_genes_for_x=51)

        result = call_outliers(zscores, counts)

        genes = result.unthresholded["GENE"].tolist()
        assert "LOWZ" in genes
        assert "LOWX" not in genes
        assert len(result.unthresholded) == 6

    def test_sorted_after_filtering(self):
        zscores, counts = _frames([
            [0.5, 0.1, 0.2],
            [0.1, -3.0, 0.2],
            [0.1, 0.1, 2.5],
            [1.0, 0.1, 0.2],
        ])

        result = call_outliers(zscores, counts)

        assert result.unthresholded["GENE"].tolist() == ["G2", "G3", "G4", "G1"]
        assert result.thresholded["GENE"].tolist() == ["G2", "G3"]
        assert result.picks["GENE"].tolist() == ["G1", "G2", "G3", "G4"]

    def test_all_missing_gives_empty_outputs(self):
        zscores, counts = _frames([[np.nan] * 3, [np.nan] * 3])

        result = call_outliers(zscores, counts)

        assert result.thresholded.empty
        assert result.unthresholded.empty
        assert result.counts_per_individual.tolist() == [0, 0, 0]
        assert result.excluded_individuals == []


class TestMedianZOutlierCaller:
    """Test the caller class surface."""

    def test_scenario_median_two_survives(self):
        """G1 (median 2 over 5 tissues) passes the 2.0 threshold; masked G2 yields no pick."""
        zscores, counts = _frames(
            [[2.0, 0.0, 0.5], [np.nan, np.nan, np.nan]],
            counts=[[5, 5, 5], [3, 3, 3]],
        )

        result = MedianZOutlierCaller(z_threshold=2.0).call(zscores, counts)

        assert result.thresholded[["GENE", "INDS", "DFS", "Z"]].values.tolist() == [["G1", "A", 5, 2.0]]
        assert "G2" not in set(result.picks["GENE"])
        assert result.n_picks == 1
        assert result.n_outliers == 1
        assert result.parameters == {"z_threshold": 2.0, "max_outliers": 50}

    def test_invalid_parameters(self):
        with pytest.raises(ValueError, match="z_threshold"):
            MedianZOutlierCaller(z_threshold=-1)
        with pytest.raises(ValueError, match="max_outliers"):
            MedianZOutlierCaller(max_outliers=0)
