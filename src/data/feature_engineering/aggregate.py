"""Per-category outcome counts from an (entity, category) relation joined with labels."""

import logging
from typing import Any, Sequence

import pandas as pd

from src.core.errors import SchemaError
from src.data.tables import require_columns, require_non_empty
from .base import KEY_COL, CATEGORY_COL, LABEL_COL


logger = logging.getLogger(__name__)


class CategoryOutcomeAggregator:
    """
    Count, per category value, how many labelled entities of each outcome
    class carry it. Purely an aggregate: no entity-level information is kept.
    """

    def __init__(self, outcome_classes: Sequence[Any]):
        self.outcome_classes = list(outcome_classes)

    def aggregate(self, relation: pd.DataFrame, labels: pd.DataFrame, variable: str = "") -> pd.DataFrame:
        """
        Args:
            relation: (KEY_COL, CATEGORY_COL) rows, one per entity membership
            labels: (KEY_COL, LABEL_COL) rows for entities whose label is known
            variable: Name used in messages

        Returns:
            Long table (CATEGORY_COL, LABEL_COL, count), only combinations present
            in the join; sorted by category then outcome class order.
        """
        require_columns(relation, [KEY_COL, CATEGORY_COL], variable)
        require_columns(labels, [KEY_COL, LABEL_COL], f"{variable} labels")
        require_non_empty(relation, variable)
        require_non_empty(labels, f"{variable} labels")

        joined = relation.merge(labels, on=KEY_COL, how="inner")
        if len(joined) == 0:
            raise SchemaError(f"'{variable}': no relation row belongs to a labelled entity, nothing to aggregate")

        counts = (
            joined.groupby([CATEGORY_COL, LABEL_COL], sort=False)
            .size()
            .reset_index(name="count")
        )
        order = {c: i for i, c in enumerate(self.outcome_classes)}
        counts["_order"] = counts[LABEL_COL].map(order)
        counts = (
            counts.sort_values([CATEGORY_COL, "_order"], kind="mergesort")
            .drop(columns="_order")
            .reset_index(drop=True)
        )
        logger.debug(
            f"'{variable}': {len(joined)} labelled memberships over "
            f"{counts[CATEGORY_COL].nunique()} categories"
        )
        return counts

    def to_wide(self, counts: pd.DataFrame) -> pd.DataFrame:
        """
        Pivot long counts to one row per category (sorted) and one column per
        outcome class, absent combinations materialised as 0.
        """
        wide = counts.pivot(index=CATEGORY_COL, columns=LABEL_COL, values="count")
        wide = wide.reindex(columns=self.outcome_classes).fillna(0).astype("int64")
        wide = wide.sort_index(kind="mergesort")
        wide.columns.name = None
        return wide
