"""Shared toy dataset: 6 labelled + 2 unlabelled entities, 3 outcome classes."""

import pandas as pd
import pytest

from contracts import FeatureMap, FeatureSpec, TransformSpec, TransformType
from src.data.tables import SourceTables


ENTITIES = pd.DataFrame({
    "id": [1, 2, 3, 4, 5, 6, 7, 8],
    "location": ["L1", "L1", "L2", "L2", "L3", "L3", "L1", "L9"],
    "fault_severity": pd.array([0, 0, 1, 1, 2, 2, None, None], dtype="Int64"),
})

EVENT_TYPE = pd.DataFrame(
    [(1, "E1"), (1, "E2"), (2, "E1"), (3, "E2"), (4, "E3"), (5, "E3"),
     (6, "E3"), (6, "E1"), (7, "E1"), (7, "E4")],
    columns=["id", "event_type"],
)

RESOURCE_TYPE = pd.DataFrame(
    [(1, "R1"), (2, "R2"), (3, "R1"), (4, "R1"), (4, "R2"), (5, "R2"), (6, "R1"), (7, "R3")],
    columns=["id", "resource_type"],
)

SEVERITY_TYPE = pd.DataFrame(
    [(i, "S1" if i % 2 else "S2") for i in range(1, 9)],
    columns=["id", "severity_type"],
)


def make_tables(entity_ids=None) -> SourceTables:
    entities = ENTITIES
    if entity_ids is not None:
        entities = ENTITIES[ENTITIES["id"].isin(entity_ids)].reset_index(drop=True)
    return SourceTables(
        entities=entities.copy(),
        relations={
            "event_type": EVENT_TYPE.copy(),
            "resource_type": RESOURCE_TYPE.copy(),
            "severity_type": SEVERITY_TYPE.copy(),
        },
        id_field="id",
        label_field="fault_severity",
        entity_table_name="entities",
    )


def make_feature_map() -> FeatureMap:
    return FeatureMap(
        name="toy_features",
        version="1.0",
        id_field="id",
        label_field="fault_severity",
        outcome_classes=[0, 1, 2],
        features=[
            FeatureSpec(
                name="event_type", source="event_type", value_field="event_type",
                prefix="event_type",
                transforms=[TransformSpec(type=TransformType.BUCKET, params={"num_buckets": 2})],
            ),
            FeatureSpec(
                name="location", source="entities", value_field="location",
                prefix="location", key="location",
                transforms=[TransformSpec(type=TransformType.BUCKET, params={"num_buckets": 2})],
            ),
            FeatureSpec(
                name="resource_type", source="resource_type", value_field="resource_type",
                prefix="resource_type",
                transforms=[TransformSpec(type=TransformType.ONEHOT)],
            ),
            FeatureSpec(
                name="severity_type", source="severity_type", value_field="severity_type",
                prefix="severity_type",
                transforms=[TransformSpec(type=TransformType.ONEHOT)],
            ),
        ],
    )


@pytest.fixture
def toy_tables() -> SourceTables:
    return make_tables()


@pytest.fixture
def toy_feature_map() -> FeatureMap:
    return make_feature_map()


@pytest.fixture
def toy_csv_dir(tmp_path):
    """The toy dataset written as the five raw CSV files."""
    raw = tmp_path / "data" / "raw"
    raw.mkdir(parents=True)
    labelled = ENTITIES["fault_severity"].notna()
    ENTITIES[labelled].to_csv(raw / "train.csv", index=False)
    ENTITIES[~labelled].drop(columns="fault_severity").to_csv(raw / "test.csv", index=False)
    EVENT_TYPE.to_csv(raw / "event_type.csv", index=False)
    RESOURCE_TYPE.to_csv(raw / "resource_type.csv", index=False)
    SEVERITY_TYPE.to_csv(raw / "severity_type.csv", index=False)
    return raw
