"""Run manager: creates run directories, persists config, feature map and tables."""

import shutil
from pathlib import Path
from datetime import datetime

import pandas as pd


class RunManager:
    """Manages run directories and artifacts."""
    
    def __init__(self, runs_dir: str = "runs"):
        self.runs_dir = Path(runs_dir)
        self.runs_dir.mkdir(exist_ok=True, parents=True)

    @staticmethod
    def new_run_id(prefix: str = "features") -> str:
        return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    
    def create_run(self, run_id: str) -> Path:
        """Create a new run directory."""
        run_dir = self.runs_dir / run_id
        run_dir.mkdir(exist_ok=True, parents=True)
        
        # Create subdirectories
        (run_dir / "artifacts").mkdir(exist_ok=True)
        (run_dir / "tables").mkdir(exist_ok=True)
        
        return run_dir
    
    def get_run_dir(self, run_id: str) -> Path:
        """Get run directory."""
        return self.runs_dir / run_id
    
    def save_config(self, run_id: str, config_path: str) -> None:
        """Copy config to run directory."""
        run_dir = self.get_run_dir(run_id)
        shutil.copy(config_path, run_dir / "config.yaml")
    
    def artifact_path(self, run_id: str, name: str) -> Path:
        return self.get_run_dir(run_id) / "artifacts" / name

    def save_table(self, run_id: str, df: pd.DataFrame, name: str, fmt: str = "csv") -> Path:
        """Write a table under tables/ as csv or parquet."""
        tables_dir = self.get_run_dir(run_id) / "tables"
        if fmt == "parquet":
            path = tables_dir / f"{name}.parquet"
            df.to_parquet(path, index=False, engine="pyarrow")
        elif fmt == "csv":
            path = tables_dir / f"{name}.csv"
            df.to_csv(path, index=False)
        else:
            raise ValueError(f"Unsupported table format: {fmt}")
        return path
    
