"""Fit the feature map (bucket tables + vocabularies) from a dataset config and save it as JSON."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Dict

from contracts import DatasetManifest, FeatureMap
from src.core.contracts_io import ContractsIO
from src.core.errors import ConfigError, SchemaError
from src.core.logger import setup_logger
from src.core.reproducibility import compute_file_hash
from src.data.adapters.factory import build_from_config, load_config
from src.data.feature_engineering.fit_feature_map import FeatureMapFitter
from src.data.tables import SourceTables, load_source_tables


logger = logging.getLogger(__name__)


def input_hashes(manifest: DatasetManifest) -> Dict[str, str]:
    """SHA256 of every input file the manifest points at."""
    hashes = {}
    for table in manifest.tables:
        for path in (table.train_path, table.test_path, table.path):
            if path and os.path.isfile(path):
                hashes[path] = compute_file_hash(path)
    return hashes


def fit(cfg: dict) -> tuple[FeatureMap, SourceTables, DatasetManifest]:
    manifest, declared = build_from_config(cfg)
    tables = load_source_tables(manifest)
    fitted = FeatureMapFitter(declared, dataset_name=manifest.name).fit(tables)
    fitted.metadata["inputs"] = input_hashes(manifest)
    return fitted, tables, manifest


def main(argv=None):
    ap = argparse.ArgumentParser(description="Fit frequency-bucket feature map")
    ap.add_argument("--config", required=True, help="dataset/features config yaml")
    ap.add_argument("--out", default=None, help="feature map json (default <io.out_root>/feature_map.json)")
    ap.add_argument("--log-level", default="INFO")
    ap.add_argument("--log-file", default=None)
    args = ap.parse_args(argv)

    setup_logger("src", log_file=args.log_file, level=args.log_level)

    try:
        cfg = load_config(args.config)
        fitted, _, manifest = fit(cfg)
    except (ConfigError, SchemaError) as e:
        logger.error(str(e))
        raise SystemExit(2)

    out_root = (cfg.get("io", {}) or {}).get("out_root", "runs")
    out_path = args.out or os.path.join(out_root, "feature_map.json")
    ContractsIO.save_feature_map(fitted, out_path)
    ContractsIO.save_dataset_manifest(manifest, os.path.join(os.path.dirname(out_path) or ".", "dataset_manifest.json"))

    logger.info(f"Saved feature map to {out_path}")
    return out_path


if __name__ == "__main__":
    main()
