"""Reproducibility: hash computation for inputs and fitted state."""

import hashlib
import json
from typing import Any, Dict

import pandas as pd


def compute_file_hash(file_path: str) -> str:
    """Compute SHA256 hash of a file."""
    sha256_hash = hashlib.sha256()
    
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            sha256_hash.update(chunk)
    
    return sha256_hash.hexdigest()


def compute_dict_hash(data: Dict[str, Any]) -> str:
    """Compute hash of a dictionary."""
    json_str = json.dumps(data, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(json_str.encode()).hexdigest()


def compute_frame_hash(df: pd.DataFrame) -> str:
    """Compute hash of a DataFrame's values, index and column names."""
    sha256_hash = hashlib.sha256()
    sha256_hash.update(json.dumps([str(c) for c in df.columns]).encode())
    sha256_hash.update(pd.util.hash_pandas_object(df, index=True).values.tobytes())
    return sha256_hash.hexdigest()
