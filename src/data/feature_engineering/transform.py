"""Transform data using a fitted feature map: assemble the flat feature table."""

import logging
from typing import Optional

import pandas as pd

from contracts import ENTITY_KEY, FeatureMap, FeatureSpec
from src.core.errors import ConfigError
from src.data.tables import SourceTables, clean_str, require_columns
from .base import (
    BaseFeatureEngineer,
    KEY_COL,
    CATEGORY_COL,
    block_key_field,
    category_relation,
    check_output_columns,
)
from .expand import CategoryToEntityExpander, OneHotExpander


logger = logging.getLogger(__name__)


class FeatureTransformer(BaseFeatureEngineer):
    """
    Transform data consistently using a fitted feature map.

    Buckets and vocabularies come from the map only, never from the data
    being transformed, so train and test get the same columns. Every entity
    of the entity table yields exactly one row (left-join semantics), with
    zeros in any block it has no membership in.
    """

    def __init__(self, feature_map: Optional[FeatureMap]):
        if feature_map is None or not feature_map.is_fitted:
            raise ConfigError("feature map is not fitted; run FeatureMapFitter first")
        check_output_columns(feature_map)
        super().__init__(feature_map)

    def fit(self, data) -> None:
        """Feature transformer doesn't need fitting."""
        pass

    def build_block(self, data: SourceTables, feature: FeatureSpec) -> pd.DataFrame:
        """
        Expanded block of one variable, indexed by its join key: entity ids,
        or the distinct attribute values for secondary-key variables.
        """
        if feature.key == ENTITY_KEY:
            relation = category_relation(data, feature)
            keys = data.entity_ids().to_numpy()
        else:
            require_columns(data.entities, [feature.key], data.entity_table_name)
            relation = category_relation(data, feature, key_field=feature.key)
            relation[KEY_COL] = clean_str(relation[KEY_COL])
            relation = relation.drop_duplicates([KEY_COL, CATEGORY_COL]).reset_index(drop=True)
            keys = sorted(pd.unique(relation[KEY_COL]).tolist())

        if feature.is_bucketed:
            expander = CategoryToEntityExpander(self.feature_map.buckets[feature.name], feature.prefix)
        else:
            expander = OneHotExpander(self.feature_map.vocabularies[feature.name], feature.prefix)
        return expander.expand(relation, keys=keys)

    def transform(self, data: SourceTables) -> pd.DataFrame:
        """
        Transform data consistently using feature map.
        Ensures train/valid/test consistency.

        Args:
            data: Source tables (train, test or both)

        Returns:
            One row per entity: id, nullable label, then every block's columns
        """
        fm = self.feature_map
        data.validate(fm.outcome_classes)

        out = data.entities[[data.id_field]].reset_index(drop=True)
        if fm.label_field:
            # Nullable label, present even for unlabelled (test-only) input
            if data.label_field and data.label_field in data.entities.columns:
                out[fm.label_field] = data.entities[data.label_field].reset_index(drop=True)
            else:
                integer_classes = all(isinstance(c, int) for c in fm.outcome_classes)
                out[fm.label_field] = pd.Series(
                    pd.NA, index=out.index, dtype="Int64" if integer_classes else "object"
                )

        for feature in fm.features:
            block = self.build_block(data, feature)
            key_field = block_key_field(data, feature)
            join_col = f"_join_{feature.name}"
            if feature.key == ENTITY_KEY:
                out[join_col] = data.entities[key_field].to_numpy()
            else:
                key_values = data.entities[key_field]
                out[join_col] = clean_str(key_values).where(key_values.notna().to_numpy(), None).to_numpy()

            out = out.merge(
                block, left_on=join_col, right_index=True, how="left", validate="many_to_one"
            ).reset_index(drop=True)
            out[block.columns] = out[block.columns].fillna(0).astype("int64")
            out = out.drop(columns=join_col)
            logger.debug(f"'{feature.name}': block of {block.shape[1]} columns over {len(block)} keys")

        out = out.rename(columns={data.id_field: fm.id_field})
        logger.info(f"Assembled feature table: {out.shape[0]} rows x {out.shape[1]} columns")
        return out
