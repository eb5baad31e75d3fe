"""Feature map schema: defines per-variable transforms (bucket, onehot) and their fitted state."""

from types import MappingProxyType
from typing import Dict, List, Optional, Any, Mapping, Tuple
from dataclasses import dataclass, field
from enum import Enum
import json


ENTITY_KEY = "entity"


class TransformType(str, Enum):
    """Feature transformation type enumeration."""
    BUCKET = "bucket"
    ONEHOT = "onehot"


@dataclass
class TransformSpec:
    """Feature transformation specification."""
    type: TransformType
    params: Dict[str, Any] = field(default_factory=dict)

    # BUCKET: {"num_buckets": 5}
    # ONEHOT: {}


@dataclass
class FeatureSpec:
    """
    One categorical variable and how it becomes a feature block.

    `key` is either "entity" (the relation is keyed by entity id) or the name
    of a single-valued attribute of the entity table (e.g. location), in which
    case the block is keyed by that attribute's value.
    """
    name: str
    source: str
    value_field: str
    prefix: str
    key: str = ENTITY_KEY
    transforms: List[TransformSpec] = field(default_factory=list)
    description: Optional[str] = None

    # Metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def transform(self) -> TransformSpec:
        return self.transforms[0]

    @property
    def is_bucketed(self) -> bool:
        return bool(self.transforms) and self.transform.type == TransformType.BUCKET

    @property
    def num_buckets(self) -> Optional[int]:
        if not self.is_bucketed:
            return None
        return int(self.transform.params["num_buckets"])

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "source": self.source,
            "value_field": self.value_field,
            "prefix": self.prefix,
            "key": self.key,
            "transforms": [
                {"type": t.type.value, "params": dict(t.params)}
                for t in self.transforms
            ],
            "description": self.description,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureSpec":
        return cls(
            name=data["name"],
            source=data["source"],
            value_field=data["value_field"],
            prefix=data["prefix"],
            key=data.get("key", ENTITY_KEY),
            transforms=[
                TransformSpec(
                    type=TransformType(t["type"]),
                    params=t.get("params", {}),
                )
                for t in data.get("transforms", [])
            ],
            description=data.get("description"),
            metadata=data.get("metadata", {}),
        )


def bucket_column(prefix: str, outcome: Any, rank: int) -> str:
    """Column name of one (variable, outcome class, bucket rank) indicator."""
    return f"{prefix}{outcome}_{rank}"


def onehot_column(prefix: str, value: str) -> str:
    """Column name of one one-hot category value."""
    return f"{prefix}_{str(value).strip().replace(' ', '_')}"


@dataclass(frozen=True)
class BucketTable:
    """
    Fitted bucket lookup for one variable: category -> one rank per outcome class.

    Ranks run 1..num_buckets, rank 1 holding the categories that co-occur least
    often with that outcome class. `cut_points[i]` holds the distinct ascending
    count thresholds for outcome class i; a count c gets rank
    1 + #{t in cut_points[i] : t < c}.
    """
    variable: str
    outcome_classes: Tuple[Any, ...]
    num_buckets: int
    cut_points: Tuple[Tuple[int, ...], ...]
    assignments: Mapping[str, Tuple[int, ...]]

    def __post_init__(self):
        object.__setattr__(self, "outcome_classes", tuple(self.outcome_classes))
        object.__setattr__(self, "cut_points", tuple(tuple(int(c) for c in cuts) for cuts in self.cut_points))
        object.__setattr__(
            self,
            "assignments",
            MappingProxyType({str(k): tuple(int(r) for r in v) for k, v in self.assignments.items()}),
        )

    def __len__(self) -> int:
        return len(self.assignments)

    def __contains__(self, category: str) -> bool:
        return category in self.assignments

    def ranks(self, category: str) -> Optional[Tuple[int, ...]]:
        """Ranks per outcome class, or None for a category never seen at fit time."""
        return self.assignments.get(category)

    def members(self, outcome_index: int, rank: int) -> List[str]:
        """Categories assigned to `rank` for the outcome class at `outcome_index`."""
        return sorted(c for c, r in self.assignments.items() if r[outcome_index] == rank)

    def effective_buckets(self) -> Tuple[int, ...]:
        """Number of distinct populated ranks per outcome class."""
        return tuple(
            len({r[i] for r in self.assignments.values()})
            for i in range(len(self.outcome_classes))
        )

    def columns(self, prefix: str) -> List[str]:
        return [
            bucket_column(prefix, outcome, rank)
            for outcome in self.outcome_classes
            for rank in range(1, self.num_buckets + 1)
        ]

    def to_dict(self) -> dict:
        return {
            "variable": self.variable,
            "outcome_classes": list(self.outcome_classes),
            "num_buckets": self.num_buckets,
            "cut_points": [list(c) for c in self.cut_points],
            "assignments": {k: list(self.assignments[k]) for k in sorted(self.assignments)},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BucketTable":
        return cls(
            variable=data["variable"],
            outcome_classes=tuple(data["outcome_classes"]),
            num_buckets=int(data["num_buckets"]),
            cut_points=tuple(tuple(c) for c in data["cut_points"]),
            assignments={k: tuple(v) for k, v in data["assignments"].items()},
        )


@dataclass(frozen=True)
class Vocabulary:
    """Fitted sorted category list of a one-hot variable."""
    variable: str
    values: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(str(v) for v in self.values))

    def __len__(self) -> int:
        return len(self.values)

    def columns(self, prefix: str) -> List[str]:
        return [onehot_column(prefix, v) for v in self.values]

    def to_dict(self) -> dict:
        return {"variable": self.variable, "values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vocabulary":
        return cls(variable=data["variable"], values=tuple(data["values"]))


@dataclass
class FeatureMap:
    """
    Feature map: defines all variables and their transformations.
    Once fitted it carries the bucket tables and vocabularies, so train and
    test are transformed with identical, train-derived lookups.
    """
    name: str
    version: str
    id_field: str = "id"
    label_field: Optional[str] = None
    outcome_classes: List[Any] = field(default_factory=list)
    description: Optional[str] = None

    # Feature specifications
    features: List[FeatureSpec] = field(default_factory=list)

    # Fitted state (from training data)
    buckets: Dict[str, BucketTable] = field(default_factory=dict)
    vocabularies: Dict[str, Vocabulary] = field(default_factory=dict)

    # Fitting metadata
    fitted_at: Optional[str] = None  # Timestamp
    fitted_on: Optional[str] = None  # Dataset name

    # Metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_fitted(self) -> bool:
        """True when every declared feature has its fitted lookup."""
        if not self.features:
            return False
        for feature in self.features:
            if feature.is_bucketed and feature.name not in self.buckets:
                return False
            if not feature.is_bucketed and feature.name not in self.vocabularies:
                return False
        return True

    def get_feature(self, name: str) -> Optional[FeatureSpec]:
        """Get feature by name."""
        for feature in self.features:
            if feature.name == name:
                return feature
        return None

    def add_feature(self, feature: FeatureSpec) -> None:
        """Add a feature."""
        self.features.append(feature)

    def feature_columns(self, feature: FeatureSpec) -> List[str]:
        """Output columns of one fitted feature block."""
        if feature.is_bucketed:
            return self.buckets[feature.name].columns(feature.prefix)
        return self.vocabularies[feature.name].columns(feature.prefix)

    def output_columns(self) -> List[str]:
        """Full ordered column list of the assembled table."""
        cols = [self.id_field]
        if self.label_field:
            cols.append(self.label_field)
        for feature in self.features:
            cols.extend(self.feature_columns(feature))
        return cols

    def fitted_state(self) -> dict:
        """Fitted lookups only (no timestamps), used for fingerprinting."""
        return {
            "buckets": {k: self.buckets[k].to_dict() for k in sorted(self.buckets)},
            "vocabularies": {k: self.vocabularies[k].to_dict() for k in sorted(self.vocabularies)},
        }

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "version": self.version,
            "id_field": self.id_field,
            "label_field": self.label_field,
            "outcome_classes": list(self.outcome_classes),
            "description": self.description,
            "features": [f.to_dict() for f in self.features],
            **self.fitted_state(),
            "fitted_at": self.fitted_at,
            "fitted_on": self.fitted_on,
            "metadata": dict(self.metadata),
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureMap":
        """Create from dictionary."""
        data = dict(data)
        data["features"] = [FeatureSpec.from_dict(f) for f in data.get("features", [])]
        data["buckets"] = {
            k: BucketTable.from_dict(v) for k, v in (data.get("buckets") or {}).items()
        }
        data["vocabularies"] = {
            k: Vocabulary.from_dict(v) for k, v in (data.get("vocabularies") or {}).items()
        }
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "FeatureMap":
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))
