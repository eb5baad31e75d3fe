# src/data/adapters/factory.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from contracts import (
    ENTITY_KEY,
    DatasetManifest,
    FeatureMap,
    FeatureSpec,
    TableRole,
    TransformSpec,
    TransformType,
)
from src.core.errors import ConfigError
from src.data.feature_engineering.base import check_feature_map
from src.utils.path_resolver import resolve_paths_in_config


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ConfigError(f"config {path} is not a mapping")
    return cfg


def load_config(path: str) -> Dict[str, Any]:
    """Read a YAML config and resolve its relative paths against the config's directory."""
    cfg = load_yaml(path)
    return resolve_paths_in_config(cfg, base=Path(path).resolve().parent)


def build_manifest_from_config(cfg: Dict[str, Any]) -> DatasetManifest:
    """
    cfg["dataset"] -> DatasetManifest. Exactly one entity table is required;
    every relation table needs a value_field.
    """
    dataset_cfg = cfg.get("dataset")
    if not dataset_cfg:
        raise ConfigError("config has no 'dataset' section")
    try:
        manifest = DatasetManifest.from_dict({
            "name": dataset_cfg.get("name", "dataset"),
            "version": str(dataset_cfg.get("version", "1.0")),
            "id_field": dataset_cfg.get("id_field", "id"),
            "label": dataset_cfg.get("label"),
            "description": dataset_cfg.get("description"),
            "tables": dataset_cfg.get("tables", []),
        })
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"invalid 'dataset' section: {e}") from e

    entity_tables = [t for t in manifest.tables if t.role == TableRole.ENTITY]
    if len(entity_tables) != 1:
        raise ConfigError(f"exactly one entity table required, got {len(entity_tables)}")
    if manifest.label is None or not manifest.outcome_classes:
        raise ConfigError("dataset.label with non-empty classes is required")
    for table in manifest.tables:
        if table.role == TableRole.RELATION and not table.value_field:
            raise ConfigError(f"relation table '{table.name}' needs a value_field")
    return manifest


def _feature_from_config(item: Dict[str, Any], manifest: DatasetManifest) -> FeatureSpec:
    if "name" not in item:
        raise ConfigError(f"feature entry without a name: {item}")
    name = item["name"]
    source = item.get("source", name)
    table = manifest.get_table(source)
    if table is None:
        raise ConfigError(f"feature '{name}' references unknown table '{source}'")

    try:
        transform_type = TransformType(item.get("transform", TransformType.BUCKET.value))
    except ValueError as e:
        raise ConfigError(f"feature '{name}': unknown transform {item.get('transform')!r}") from e
    params = {}
    if transform_type == TransformType.BUCKET:
        if "num_buckets" not in item:
            raise ConfigError(f"feature '{name}': bucket transform needs num_buckets")
        params["num_buckets"] = item["num_buckets"]

    value_field = item.get("value_field") or table.value_field or name
    return FeatureSpec(
        name=name,
        source=source,
        value_field=value_field,
        prefix=item.get("prefix", name),
        key=item.get("key", ENTITY_KEY),
        transforms=[TransformSpec(type=transform_type, params=params)],
        description=item.get("description"),
    )


def build_feature_map_from_config(cfg: Dict[str, Any], manifest: DatasetManifest) -> FeatureMap:
    """cfg["features"] -> declared (unfitted) FeatureMap, validated."""
    items = cfg.get("features") or []
    entity_table = manifest.entity_table()
    feature_map = FeatureMap(
        name=cfg.get("name", f"{manifest.name}_features"),
        version=str(cfg.get("version", manifest.version)),
        id_field=manifest.id_field,
        label_field=manifest.label_field,
        outcome_classes=manifest.outcome_classes,
        features=[_feature_from_config(item, manifest) for item in items],
        metadata={"entity_table": entity_table.name},
    )
    check_feature_map(feature_map)
    return feature_map


def build_from_config(cfg: Dict[str, Any]) -> Tuple[DatasetManifest, FeatureMap]:
    manifest = build_manifest_from_config(cfg)
    return manifest, build_feature_map_from_config(cfg, manifest)
