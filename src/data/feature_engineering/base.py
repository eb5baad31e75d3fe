"""Base feature engineer class and the shared (key, category) relation builder."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import pandas as pd

from contracts import ENTITY_KEY, FeatureMap, FeatureSpec, TransformType
from src.core.errors import ConfigError
from src.data.tables import SourceTables, clean_str, require_columns, require_unique


KEY_COL = "_key"
CATEGORY_COL = "_category"
LABEL_COL = "_label"


def check_feature_map(feature_map: FeatureMap) -> None:
    """Validate a feature map's declarations before any data is touched."""
    classes = list(feature_map.outcome_classes)
    if not classes:
        raise ConfigError("outcome_classes must not be empty")
    if len(set(classes)) != len(classes):
        raise ConfigError(f"outcome_classes has duplicates: {classes}")
    if not feature_map.features:
        raise ConfigError(f"feature map '{feature_map.name}' declares no features")

    names = [f.name for f in feature_map.features]
    if len(set(names)) != len(names):
        raise ConfigError(f"duplicate feature names: {names}")
    prefixes = [f.prefix for f in feature_map.features]
    if len(set(prefixes)) != len(prefixes):
        raise ConfigError(f"duplicate feature prefixes: {prefixes}")

    for feature in feature_map.features:
        if len(feature.transforms) != 1:
            raise ConfigError(f"feature '{feature.name}' needs exactly one transform, got {len(feature.transforms)}")
        transform = feature.transform
        if transform.type == TransformType.BUCKET:
            g = transform.params.get("num_buckets")
            if not isinstance(g, int) or isinstance(g, bool) or g < 1:
                raise ConfigError(f"feature '{feature.name}': num_buckets must be an integer >= 1, got {g!r}")
        if not feature.prefix:
            raise ConfigError(f"feature '{feature.name}' has an empty prefix")


def check_output_columns(feature_map: FeatureMap) -> None:
    """
    Generated column names must be unique across the whole table. Prefixes
    can differ and still clash (prefix "a0" one-hot value "1" vs prefix "a"
    class 0 rank 1), as can one-hot values differing only by space vs "_".
    """
    owners = {feature_map.id_field: "id field"}
    if feature_map.label_field:
        if feature_map.label_field in owners:
            raise ConfigError(f"label field '{feature_map.label_field}' clashes with the id field")
        owners[feature_map.label_field] = "label field"
    for feature in feature_map.features:
        for col in feature_map.feature_columns(feature):
            if col in owners:
                raise ConfigError(
                    f"output column '{col}' of feature '{feature.name}' clashes with {owners[col]}"
                )
            owners[col] = f"feature '{feature.name}'"


def category_relation(
    tables: SourceTables,
    feature: FeatureSpec,
    key_field: Optional[str] = None,
) -> pd.DataFrame:
    """
    Build the (KEY_COL, CATEGORY_COL) relation of one variable.

    key_field defaults to the entity id. Rows with a missing category are
    memberships that do not exist and are dropped.
    """
    key_field = key_field or tables.id_field
    df = tables.table(feature.source)
    require_columns(df, [key_field, feature.value_field], feature.source)

    present = df[feature.value_field].notna()
    rel = pd.DataFrame({
        KEY_COL: df.loc[present, key_field].to_numpy(),
        CATEGORY_COL: clean_str(df.loc[present, feature.value_field]).to_numpy(),
    })
    if key_field == tables.id_field:
        require_unique(rel, [KEY_COL, CATEGORY_COL], feature.source)
    return rel


def block_key_field(tables: SourceTables, feature: FeatureSpec) -> str:
    """Column of the entity table a feature block is joined on."""
    return tables.id_field if feature.key == ENTITY_KEY else feature.key


class BaseFeatureEngineer(ABC):
    """Base class for feature engineers."""

    def __init__(self, feature_map: FeatureMap):
        self.feature_map = feature_map

    @abstractmethod
    def fit(self, data: Any) -> Any:
        """
        Fit feature engineer on training data.

        Args:
            data: Training data
        """
        pass

    @abstractmethod
    def transform(self, data: Any) -> Any:
        """
        Transform data using fitted feature map.

        Args:
            data: Data to transform

        Returns:
            Transformed data
        """
        pass

    def fit_transform(self, data: Any) -> Any:
        """Fit and transform in one step."""
        self.fit(data)
        return self.transform(data)
