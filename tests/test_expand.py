"""Test expansion of bucket lookups onto entities."""

import pandas as pd
import pytest

from contracts import BucketTable, Vocabulary
from src.core.errors import ConfigError
from src.data.feature_engineering.base import KEY_COL, CATEGORY_COL
from src.data.feature_engineering.expand import (
    CategoryToEntityExpander,
    OneHotExpander,
    fit_vocabulary,
)
from src.data.feature_engineering.quantile import QuantileBucketer


@pytest.fixture
def example_table() -> BucketTable:
    wide = pd.DataFrame({0: [10, 5, 1], 1: [1, 5, 10]}, index=["X", "Y", "Z"])
    return QuantileBucketer(3).fit(wide, "event_type")


def _relation(rows):
    return pd.DataFrame(rows, columns=[KEY_COL, CATEGORY_COL])


def test_example_entity_linked_to_x_and_y(example_table):
    """Entity with X and Y counts one in each of their class-0 ranks."""
    block = CategoryToEntityExpander(example_table, "et").expand(_relation([(100, "X"), (100, "Y")]))

    row = block.loc[100]
    assert list(block.columns) == ["et0_1", "et0_2", "et0_3", "et1_1", "et1_2", "et1_3"]
    assert row[["et0_1", "et0_2", "et0_3"]].tolist() == [0, 1, 1]
    assert row[["et1_1", "et1_2", "et1_3"]].tolist() == [1, 1, 0]


def test_unseen_category_is_all_zero(example_table):
    """Category D never seen at fit time contributes nothing and does not raise."""
    block = CategoryToEntityExpander(example_table, "et").expand(
        _relation([(1, "D"), (2, "X"), (2, "D")])
    )

    assert block.loc[1].sum() == 0
    assert block.loc[2].sum() == 2  # X once per outcome class


def test_row_sums_equal_membership_counts(example_table):
    """Per outcome class, bucket columns sum to the entity's seen memberships."""
    rel = _relation([(1, "X"), (1, "Y"), (1, "Z"), (2, "Z"), (3, "Y"), (3, "Z")])
    block = CategoryToEntityExpander(example_table, "et").expand(rel)

    expected = rel.groupby(KEY_COL).size()
    for cls in (0, 1):
        cols = [f"et{cls}_{r}" for r in range(1, 4)]
        assert block[cols].sum(axis=1).tolist() == expected.loc[block.index].tolist()
    assert (block.to_numpy() >= 0).all()


def test_keys_without_memberships_kept(example_table):
    """Keys given explicitly appear even with no relation rows."""
    block = CategoryToEntityExpander(example_table, "et").expand(
        _relation([(1, "X")]), keys=[3, 1, 2]
    )

    assert list(block.index) == [3, 1, 2]
    assert block.loc[3].sum() == 0
    assert block.loc[2].sum() == 0
    assert block.loc[1].sum() == 2


def test_orphan_keys_dropped(example_table):
    """Rows whose key is outside the key universe are ignored."""
    block = CategoryToEntityExpander(example_table, "et").expand(
        _relation([(1, "X"), (99, "Y")]), keys=[1]
    )
    assert list(block.index) == [1]
    assert block.to_numpy().sum() == 2


def test_fixed_width_with_unpopulated_ranks():
    """All G ranks are columns even when the split is degenerate."""
    table = QuantileBucketer(4).fit(pd.DataFrame({0: [3, 3]}, index=["a", "b"]), "v")
    block = CategoryToEntityExpander(table, "v").expand(_relation([(1, "a")]))

    assert list(block.columns) == ["v0_1", "v0_2", "v0_3", "v0_4"]
    assert block.loc[1].tolist() == [1, 0, 0, 0]


def test_onehot_counts_and_unseen():
    """One-hot sums memberships per value; unseen values are dropped."""
    rel = _relation([(1, "resource 1"), (1, "resource 2"), (2, "resource 2"), (2, "resource 7")])
    vocab = Vocabulary(variable="resource_type", values=("resource 1", "resource 2"))
    block = OneHotExpander(vocab, "resource_type").expand(rel, keys=[1, 2, 3])

    assert list(block.columns) == ["resource_type_resource_1", "resource_type_resource_2"]
    assert block.loc[1].tolist() == [1, 1]
    assert block.loc[2].tolist() == [0, 1]
    assert block.loc[3].tolist() == [0, 0]


def test_fit_vocabulary_sorted():
    """Vocabulary is the sorted distinct values."""
    vocab = fit_vocabulary(_relation([(1, "b"), (2, "a"), (3, "b")]), "v")
    assert vocab.values == ("a", "b")


def test_onehot_clashing_values_rejected():
    """Two values that normalise to one column name are refused."""
    vocab = Vocabulary(variable="v", values=("a b", "a_b"))
    with pytest.raises(ConfigError, match="v_a_b"):
        OneHotExpander(vocab, "v")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
