"""Test feature map fit/transform consistency across serialization."""

import dataclasses
import json

import pandas as pd
import pytest

from contracts import (
    BucketTable,
    DatasetManifest,
    FeatureMap,
    LabelSpec,
    TableRole,
    TableSpec,
    TransformType,
)
from src.core.contracts_io import ContractsIO
from src.core.errors import ConfigError
from src.data.feature_engineering.fit_feature_map import FeatureMapFitter
from src.data.feature_engineering.transform import FeatureTransformer


def test_feature_map_creation():
    """Test creating a feature map."""
    feature_map = FeatureMap(
        name="test_map",
        version="1.0",
    )

    assert feature_map.name == "test_map"
    assert feature_map.version == "1.0"
    assert len(feature_map.features) == 0
    assert not feature_map.is_fitted


def test_declared_map_serialization(toy_feature_map):
    """Declared feature specs survive a JSON round trip."""
    loaded = FeatureMap.from_json(toy_feature_map.to_json())

    assert loaded.name == toy_feature_map.name
    assert [f.name for f in loaded.features] == ["event_type", "location", "resource_type", "severity_type"]
    assert loaded.get_feature("location").key == "location"
    assert loaded.get_feature("event_type").transform.type == TransformType.BUCKET
    assert loaded.get_feature("event_type").num_buckets == 2
    assert loaded.get_feature("resource_type").num_buckets is None


def test_fitted_map_round_trip_gives_identical_table(tmp_path, toy_tables, toy_feature_map):
    """A fitted map saved and reloaded transforms bit-identically."""
    fitted = FeatureMapFitter(toy_feature_map, dataset_name="toy").fit(toy_tables)
    path = tmp_path / "artifacts" / "feature_map.json"
    ContractsIO.save_feature_map(fitted, str(path))
    loaded = ContractsIO.load_feature_map(str(path))

    assert loaded.is_fitted
    assert loaded.fitted_state() == fitted.fitted_state()
    assert loaded.metadata["fingerprint"] == fitted.metadata["fingerprint"]
    assert loaded.fitted_on == "toy"

    before = FeatureTransformer(fitted).transform(toy_tables)
    after = FeatureTransformer(loaded).transform(toy_tables)
    pd.testing.assert_frame_equal(before, after)


def test_bucket_table_is_immutable():
    """Fitted lookups cannot be modified after fitting."""
    table = BucketTable(
        variable="v",
        outcome_classes=(0, 1),
        num_buckets=2,
        cut_points=((1,), (3,)),
        assignments={"a": (1, 2), "b": (2, 1)},
    )

    with pytest.raises(dataclasses.FrozenInstanceError):
        table.num_buckets = 3
    with pytest.raises(TypeError):
        table.assignments["c"] = (1, 1)
    assert BucketTable.from_dict(table.to_dict()) == table


def test_dataset_manifest_serialization():
    """Dataset manifest JSON round trip."""
    manifest = DatasetManifest(
        name="toy",
        version="1.0",
        id_field="id",
        label=LabelSpec(name="fault_severity", classes=[0, 1, 2]),
        tables=[
            TableSpec(name="entities", role=TableRole.ENTITY, train_path="train.csv", test_path="test.csv"),
            TableSpec(name="event_type", role=TableRole.RELATION, value_field="event_type", path="event_type.csv"),
        ],
    )
    loaded = DatasetManifest.from_json(manifest.to_json())

    assert loaded.label_field == "fault_severity"
    assert loaded.outcome_classes == [0, 1, 2]
    assert loaded.entity_table().name == "entities"
    assert loaded.get_table("event_type").role == TableRole.RELATION


def test_load_requires_fitted_map(tmp_path, toy_feature_map):
    """A declared-only map loads, but not where fitted lookups are required."""
    path = str(tmp_path / "declared.json")
    ContractsIO.save_feature_map(toy_feature_map, path)

    assert not ContractsIO.load_feature_map(path).is_fitted
    with pytest.raises(ConfigError, match="not fitted"):
        ContractsIO.load_feature_map(path, require_fitted=True)


def test_load_rejects_edited_bucket_table(tmp_path, toy_tables, toy_feature_map):
    """Lookups edited after fitting no longer match the recorded fingerprint."""
    fitted = FeatureMapFitter(toy_feature_map).fit(toy_tables)
    path = tmp_path / "feature_map.json"
    ContractsIO.save_feature_map(fitted, str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    data["buckets"]["event_type"]["assignments"]["E1"] = [1, 1, 1]
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(ConfigError, match="fingerprint"):
        ContractsIO.load_feature_map(str(path), require_fitted=True)


def test_load_missing_file(tmp_path):
    """A missing contract file is a configuration error."""
    with pytest.raises(ConfigError):
        ContractsIO.load_feature_map(str(tmp_path / "nope.json"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
