"""Contracts I/O: JSON persistence of dataset manifests and feature maps."""

import json
import logging
import os
from typing import Any, Type, TypeVar

from contracts import DatasetManifest, FeatureMap
from src.core.errors import ConfigError
from src.core.reproducibility import compute_dict_hash


T = TypeVar("T")

logger = logging.getLogger(__name__)


class ContractsIO:
    """Read and write contracts; loaded feature maps are checked before reuse."""

    @staticmethod
    def save_json(obj: Any, path: str) -> None:
        """Write a contract (anything with to_json) or a plain JSON-able object."""
        out_dir = os.path.dirname(path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)

        content = obj.to_json() if hasattr(obj, "to_json") else json.dumps(obj, indent=2, ensure_ascii=False)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def load_json(path: str, target_class: Type[T]) -> T:
        """Read a contract file; malformed or missing files are configuration errors."""
        if not os.path.exists(path):
            raise ConfigError(f"contract file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        try:
            return target_class.from_json(content)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"cannot read {target_class.__name__} from {path}: {e}") from e

    @staticmethod
    def save_dataset_manifest(manifest: DatasetManifest, path: str) -> None:
        ContractsIO.save_json(manifest, path)

    @staticmethod
    def load_dataset_manifest(path: str) -> DatasetManifest:
        return ContractsIO.load_json(path, DatasetManifest)

    @staticmethod
    def save_feature_map(feature_map: FeatureMap, path: str) -> None:
        """Save feature map (including fitted bucket tables and vocabularies)."""
        ContractsIO.save_json(feature_map, path)

    @staticmethod
    def load_feature_map(path: str, require_fitted: bool = False) -> FeatureMap:
        """
        Load a feature map.

        Args:
            path: feature_map.json written by save_feature_map
            require_fitted: Refuse declared-only maps (applying needs fitted lookups)

        Returns:
            FeatureMap; a fitted one carrying a fingerprint is verified against
            its lookups, so a hand-edited bucket table is not applied silently
        """
        feature_map = ContractsIO.load_json(path, FeatureMap)
        if not feature_map.is_fitted:
            if require_fitted:
                raise ConfigError(f"feature map {path} is not fitted; run fsf-fit first")
            return feature_map

        recorded = feature_map.metadata.get("fingerprint")
        if recorded is not None:
            actual = compute_dict_hash(feature_map.fitted_state())
            if actual != recorded:
                raise ConfigError(
                    f"feature map {path}: fitted lookups do not match fingerprint "
                    f"({actual[:12]} != {recorded[:12]})"
                )
        logger.info(f"Loaded fitted feature map '{feature_map.name}' from {path}")
        return feature_map
