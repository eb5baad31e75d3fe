"""
Equal-frequency (quantile) bucketing of per-category outcome counts.

Cut-point rule, for one outcome class with n categories and G buckets:

    1. Sort the categories by (count, category key) ascending. The category
       key only orders equal counts; the cut values depend on counts alone.
    2. For q = 1..G-1 take the value at position ceil(q * n / G) - 1 of the
       sorted counts. Duplicate values collapse, so there are at most G-1
       distinct cut points.
    3. A category with count c gets rank 1 + #{cut points < c}.

Equal counts therefore always share a rank, and buckets hold as close to n/G
categories each as the ties allow. When the data has fewer distinct counts
than G the partition collapses to fewer populated ranks (1..E, E <= G) and the
higher ranks stay empty.

Collapse also happens with G or more distinct counts when one value fills
several quantile positions. Sparse classes are the usual case: for counts
[0]*6 + [1, 2, 3, 4] and G=5 the positions 1, 3, 5, 7 give cuts (0, 0, 0, 2),
so only (0, 2) remain and 3 ranks are populated. Splitting the zeros across
ranks would break the equal-counts-share-a-rank rule, so E is the number of
distinct quantile values, which can be less than min(G, distinct counts).

Nothing is drawn from random state, so the same
counts always give the same ranks.
"""

import logging
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from contracts import BucketTable
from src.core.errors import ConfigError, SchemaError


logger = logging.getLogger(__name__)


def quantile_cut_points(counts: Sequence[int], num_buckets: int) -> Tuple[int, ...]:
    """Distinct ascending cut values splitting `counts` into `num_buckets` equal-frequency groups."""
    values = np.sort(np.asarray(counts, dtype=np.int64), kind="mergesort")
    n = len(values)
    if n == 0:
        raise SchemaError("cannot compute quantile cut points of an empty count vector")
    positions = [(q * n + num_buckets - 1) // num_buckets - 1 for q in range(1, num_buckets)]
    return tuple(int(v) for v in np.unique(values[positions])) if positions else ()


def assign_ranks(counts: Sequence[int], cut_points: Sequence[int]) -> np.ndarray:
    """Rank 1 + number of cut points strictly below each count."""
    cuts = np.asarray(cut_points, dtype=np.int64)
    return np.searchsorted(cuts, np.asarray(counts, dtype=np.int64), side="left") + 1


class QuantileBucketer:
    """Partition categories into `num_buckets` ordinal frequency buckets per outcome class."""

    def __init__(self, num_buckets: int):
        if num_buckets < 1:
            raise ConfigError(f"num_buckets must be >= 1, got {num_buckets}")
        self.num_buckets = num_buckets

    def fit(self, wide: pd.DataFrame, variable: str) -> BucketTable:
        """
        Args:
            wide: One row per category (index), one int column per outcome class
            variable: Variable name recorded in the table

        Returns:
            BucketTable with one rank per outcome class for every category
        """
        if len(wide) == 0:
            raise SchemaError(f"'{variable}': no categories to bucket")

        # Stable category order for the (count, key) sort
        wide = wide.sort_index(kind="mergesort")
        categories: List[str] = [str(c) for c in wide.index]

        cut_points = []
        rank_columns = []
        for outcome in wide.columns:
            counts = wide[outcome].to_numpy()
            cuts = quantile_cut_points(counts, self.num_buckets)
            ranks = assign_ranks(counts, cuts)
            cut_points.append(cuts)
            rank_columns.append(ranks)

            populated = len(np.unique(ranks))
            if populated < min(self.num_buckets, len(categories)):
                logger.info(
                    f"'{variable}' outcome {outcome}: degenerate split, "
                    f"{populated}/{self.num_buckets} buckets populated "
                    f"({len(np.unique(counts))} distinct counts over {len(categories)} categories)"
                )

        rank_matrix = np.column_stack(rank_columns)
        assignments: Dict[str, Tuple[int, ...]] = {
            cat: tuple(int(r) for r in row) for cat, row in zip(categories, rank_matrix)
        }
        table = BucketTable(
            variable=variable,
            outcome_classes=tuple(wide.columns.tolist()),
            num_buckets=self.num_buckets,
            cut_points=tuple(cut_points),
            assignments=assignments,
        )
        logger.info(
            f"'{variable}': {len(table)} categories into {self.num_buckets} buckets, "
            f"populated per outcome {table.effective_buckets()}"
        )
        return table
