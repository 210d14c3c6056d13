"""Serialization utilities."""

import os
import json
import pickle
from pathlib import Path
from typing import Any


def save_json(data: Any, path: Path):
    """Save data as JSON with atomic write."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    tmp_path = path.parent / f"{path.name}.tmp"
    
    try:
        with open(tmp_path, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def load_json(path: Path) -> Any:
    """Load data from JSON."""
    with open(path, 'r') as f:
        return json.load(f)


def save_pickle(data: Any, path: Path):
    """Save data using pickle with atomic write.
    
    Args:
        data: Data to save
        path: Target file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    # Use temporary file for atomic write
    tmp_path = path.parent / f"{path.name}.tmp"
    
    try:
        with open(tmp_path, 'wb') as f:
            pickle.dump(data, f, protocol=pickle.HIGHEST_PROTOCOL)
        
        # Atomic rename
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on error
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def load_pickle(path: Path) -> Any:
    """Load data from pickle."""
    with open(path, 'rb') as f:
        return pickle.load(f)
