"""Contracts: Core data schemas and specifications for the project."""

from .dataset_manifest import DatasetManifest, LabelSpec, TableSpec, TableRole
from .feature_map import (
    ENTITY_KEY,
    BucketTable,
    FeatureMap,
    FeatureSpec,
    TransformSpec,
    TransformType,
    Vocabulary,
    bucket_column,
    onehot_column,
)

__all__ = [
    "DatasetManifest",
    "LabelSpec",
    "TableSpec",
    "TableRole",
    "ENTITY_KEY",
    "BucketTable",
    "FeatureMap",
    "FeatureSpec",
    "TransformSpec",
    "TransformType",
    "Vocabulary",
    "bucket_column",
    "onehot_column",
]
