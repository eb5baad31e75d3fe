"""Expand category lookups back onto keys: fixed-width count rows per entity (or secondary key)."""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from contracts import BucketTable, Vocabulary
from src.core.errors import ConfigError, SchemaError
from src.data.tables import require_columns
from .base import KEY_COL, CATEGORY_COL


logger = logging.getLogger(__name__)


def _key_index(relation: pd.DataFrame, keys: Optional[Sequence]) -> pd.Index:
    if keys is None:
        return pd.Index(pd.unique(relation[KEY_COL])).sort_values()
    index = pd.Index(keys)
    if index.has_duplicates:
        raise SchemaError("expansion keys must be unique")
    return index


def _accumulate(
    relation: pd.DataFrame,
    index: pd.Index,
    categories: pd.Index,
    variable: str,
):
    """
    Locate every relation row: (row position in `index`, position of its
    category in `categories`), keeping only rows found in both.
    """
    row_pos = index.get_indexer(relation[KEY_COL])
    cat_pos = categories.get_indexer(relation[CATEGORY_COL])

    orphan = row_pos < 0
    if orphan.any():
        logger.warning(
            f"'{variable}': {int(orphan.sum())} rows reference keys outside the entity table, dropped"
        )
    unseen = (cat_pos < 0) & ~orphan
    if unseen.any():
        logger.info(
            f"'{variable}': {int(unseen.sum())} rows with {relation.loc[unseen, CATEGORY_COL].nunique()} "
            f"categories unseen at fit time contribute zero"
        )
    keep = ~orphan & ~unseen
    return row_pos[keep], cat_pos[keep]


class CategoryToEntityExpander:
    """
    Turn (key, category) memberships into one row per key holding, for every
    (outcome class, bucket rank), how many of the key's categories fall there.

    A single pass over the relation increments slots of a zero-initialised
    (keys x classes*G) count array; no wide intermediate table is built.
    """

    def __init__(self, bucket_table: BucketTable, prefix: str):
        self.bucket_table = bucket_table
        self.prefix = prefix
        self._categories = pd.Index(list(bucket_table.assignments.keys()))
        self._ranks = np.array(
            [bucket_table.assignments[c] for c in self._categories], dtype=np.int64
        ).reshape(len(self._categories), len(bucket_table.outcome_classes))

    @property
    def columns(self):
        return self.bucket_table.columns(self.prefix)

    def expand(self, relation: pd.DataFrame, keys: Optional[Sequence] = None) -> pd.DataFrame:
        """
        Args:
            relation: (KEY_COL, CATEGORY_COL) rows
            keys: Universe of output rows; keys without memberships get all-zero
                rows. Defaults to the distinct relation keys, sorted.

        Returns:
            DataFrame indexed by key with classes*G int64 columns
        """
        require_columns(relation, [KEY_COL, CATEGORY_COL], self.bucket_table.variable)
        index = _key_index(relation, keys)
        num_buckets = self.bucket_table.num_buckets
        n_classes = len(self.bucket_table.outcome_classes)

        rows, cats = _accumulate(relation, index, self._categories, self.bucket_table.variable)
        out = np.zeros((len(index), n_classes * num_buckets), dtype=np.int64)
        for i in range(n_classes):
            cols = i * num_buckets + self._ranks[cats, i] - 1
            np.add.at(out, (rows, cols), 1)

        return pd.DataFrame(out, index=index, columns=self.columns)


class OneHotExpander:
    """One count column per vocabulary value, summed over a key's memberships."""

    def __init__(self, vocabulary: Vocabulary, prefix: str):
        self.vocabulary = vocabulary
        self.prefix = prefix
        self._categories = pd.Index(list(vocabulary.values))
        columns = pd.Index(self.columns)
        if columns.has_duplicates:
            clashing = sorted(set(columns[columns.duplicated()]))
            raise ConfigError(f"'{vocabulary.variable}': one-hot values map to the same columns {clashing}")

    @property
    def columns(self):
        return self.vocabulary.columns(self.prefix)

    def expand(self, relation: pd.DataFrame, keys: Optional[Sequence] = None) -> pd.DataFrame:
        require_columns(relation, [KEY_COL, CATEGORY_COL], self.vocabulary.variable)
        index = _key_index(relation, keys)

        rows, cats = _accumulate(relation, index, self._categories, self.vocabulary.variable)
        out = np.zeros((len(index), len(self._categories)), dtype=np.int64)
        np.add.at(out, (rows, cats), 1)

        return pd.DataFrame(out, index=index, columns=self.columns)


def fit_vocabulary(relation: pd.DataFrame, variable: str) -> Vocabulary:
    """Sorted distinct category values of a small-cardinality variable."""
    require_columns(relation, [KEY_COL, CATEGORY_COL], variable)
    if len(relation) == 0:
        raise SchemaError(f"'{variable}': empty relation, cannot fit vocabulary")
    values = sorted(pd.unique(relation[CATEGORY_COL]).tolist())
    logger.info(f"'{variable}': one-hot vocabulary of {len(values)} values")
    return Vocabulary(variable=variable, values=tuple(values))
