"""Dataset manifest schema: defines source tables, id/label fields and outcome classes."""

from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict
from enum import Enum
import json


class TableRole(str, Enum):
    """Role of a source table in the pipeline."""
    ENTITY = "entity"      # one row per entity id, optional label, single-valued attributes
    RELATION = "relation"  # (entity id, category value), one-to-many


@dataclass
class LabelSpec:
    """Label specification: the fixed, known-at-design-time outcome classes."""
    name: str
    classes: List[Any] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class TableSpec:
    """Source table specification."""
    name: str
    role: TableRole
    value_field: Optional[str] = None
    # Entity tables usually come as a labelled train file plus an unlabelled test file
    train_path: Optional[str] = None
    test_path: Optional[str] = None
    path: Optional[str] = None
    description: Optional[str] = None


@dataclass
class DatasetManifest:
    """
    Dataset manifest: defines the structure of the input tables consumed by
    the feature pipeline.
    """
    name: str
    version: str
    id_field: str = "id"
    label: Optional[LabelSpec] = None
    description: Optional[str] = None

    # Tables
    tables: List[TableSpec] = field(default_factory=list)

    # Metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def label_field(self) -> Optional[str]:
        return self.label.name if self.label else None

    @property
    def outcome_classes(self) -> List[Any]:
        return list(self.label.classes) if self.label else []

    def get_table(self, name: str) -> Optional[TableSpec]:
        """Get table spec by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def entity_table(self) -> Optional[TableSpec]:
        """Get the (single) entity table."""
        for table in self.tables:
            if table.role == TableRole.ENTITY:
                return table
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = asdict(self)
        data["tables"] = [
            {**asdict(table), "role": table.role.value}
            for table in self.tables
        ]
        return data

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatasetManifest":
        """Create from a plain dictionary (parsed JSON or YAML)."""
        data = dict(data)
        if data.get("label") is not None:
            label = data["label"]
            data["label"] = LabelSpec(
                name=label["name"],
                classes=list(label.get("classes", [])),
                description=label.get("description"),
            )
        if "tables" in data:
            data["tables"] = [
                TableSpec(
                    name=table["name"],
                    role=TableRole(table["role"]),
                    value_field=table.get("value_field"),
                    train_path=table.get("train_path"),
                    test_path=table.get("test_path"),
                    path=table.get("path"),
                    description=table.get("description"),
                )
                for table in data["tables"]
            ]
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> "DatasetManifest":
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))
