"""Source tables: the entity table plus (entity id, category) relations, with schema checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from contracts import DatasetManifest, TableRole
from src.core.errors import ConfigError, SchemaError


logger = logging.getLogger(__name__)


def clean_str(s: pd.Series) -> pd.Series:
    # normalise category values so "event_type 11" and " event_type 11" are one category
    return s.astype(str).str.strip()


def require_columns(df: pd.DataFrame, required: Iterable[str], table: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaError(f"table '{table}' missing required columns: {missing}. Found: {list(df.columns)}")


def require_non_empty(df: pd.DataFrame, table: str) -> None:
    if len(df) == 0:
        raise SchemaError(f"table '{table}' has zero rows")


def require_unique(df: pd.DataFrame, cols: Sequence[str], table: str) -> None:
    dup = df.duplicated(subset=list(cols), keep=False)
    if dup.any():
        sample = df.loc[dup, list(cols)].head(5).to_dict("records")
        raise SchemaError(f"table '{table}' has {int(dup.sum())} rows with duplicate {list(cols)}, e.g. {sample}")


def require_labels_in(labels: pd.Series, classes: Sequence[Any], table: str) -> None:
    known = labels.dropna()
    bad = known[~known.isin(list(classes))]
    if len(bad) > 0:
        raise SchemaError(
            f"table '{table}' has labels outside outcome classes {list(classes)}: "
            f"{sorted(pd.unique(bad).tolist())[:10]}"
        )


@dataclass
class SourceTables:
    """
    In-memory input of the feature pipeline.

    `entities` has one row per entity id (train and test), the label column
    (missing for unlabelled entities) and any single-valued attributes.
    `relations` maps a table name to its (entity id, category value) rows.
    """
    entities: pd.DataFrame
    relations: Dict[str, pd.DataFrame] = field(default_factory=dict)
    id_field: str = "id"
    label_field: Optional[str] = None
    entity_table_name: str = "entities"

    def validate(self, outcome_classes: Sequence[Any]) -> None:
        """Structural checks that must pass before any aggregation."""
        require_columns(self.entities, [self.id_field], self.entity_table_name)
        require_non_empty(self.entities, self.entity_table_name)
        require_unique(self.entities, [self.id_field], self.entity_table_name)
        if self.label_field and self.label_field in self.entities.columns:
            require_labels_in(self.entities[self.label_field], outcome_classes, self.entity_table_name)

    def has_table(self, name: str) -> bool:
        return name == self.entity_table_name or name in self.relations

    def table(self, name: str) -> pd.DataFrame:
        if name == self.entity_table_name:
            return self.entities
        if name not in self.relations:
            raise ConfigError(f"unknown table '{name}', available: {[self.entity_table_name, *self.relations]}")
        return self.relations[name]

    def entity_ids(self) -> pd.Series:
        return self.entities[self.id_field]

    def labels(self) -> pd.DataFrame:
        """(id, label) for entities whose label is known."""
        if not self.label_field or self.label_field not in self.entities.columns:
            raise SchemaError(
                f"table '{self.entity_table_name}' has no label column '{self.label_field}', cannot fit"
            )
        out = self.entities[[self.id_field, self.label_field]]
        out = out[out[self.label_field].notna()]
        require_non_empty(out, f"{self.entity_table_name} (labelled rows)")
        return out.reset_index(drop=True)


def _read_csv(path: str, usecols: Optional[List[str]] = None) -> pd.DataFrame:
    logger.info(f"Reading {path}")
    return pd.read_csv(path, usecols=usecols)


def load_source_tables(manifest: DatasetManifest) -> SourceTables:
    """
    Read the manifest's CSV tables. The entity table is the concatenation of
    its labelled train file and (optional) unlabelled test file.
    """
    spec = manifest.entity_table()
    if spec is None:
        raise ConfigError(f"manifest '{manifest.name}' declares no entity table")

    parts = []
    for path in (spec.train_path, spec.test_path, spec.path):
        if path:
            parts.append(_read_csv(path))
    if not parts:
        raise ConfigError(f"entity table '{spec.name}' has no path")
    entities = pd.concat(parts, ignore_index=True, sort=False)

    label_field = manifest.label_field
    integer_classes = all(isinstance(c, int) for c in manifest.outcome_classes)
    if label_field and label_field in entities.columns and integer_classes:
        require_labels_in(entities[label_field], manifest.outcome_classes, spec.name)
        entities[label_field] = entities[label_field].astype("Int64")

    relations = {}
    for table in manifest.tables:
        if table.role != TableRole.RELATION:
            continue
        if not table.path:
            raise ConfigError(f"relation table '{table.name}' has no path")
        df = _read_csv(table.path)
        require_columns(df, [manifest.id_field, table.value_field], table.name)
        relations[table.name] = df

    logger.info(
        f"Loaded {len(entities)} entities and relations "
        + ", ".join(f"{k}={len(v)}" for k, v in relations.items())
    )
    return SourceTables(
        entities=entities,
        relations=relations,
        id_field=manifest.id_field,
        label_field=label_field,
        entity_table_name=spec.name,
    )
