from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = "config/params.yaml"

DEFAULTS: Dict = {
    "flickr": {
        "base_url": "https://api.flickr.com/services/rest/",
        "method": "flickr.photos.search",
        "api_key": None,          # falls back to env FLICKR_API_KEY
        "extras": "url_s",        # small rendition URL
        "safe_search": 1,
        "per_page": 21,
        "timeout_s": 10.0,
        "bbox_half_width": 1.0,
        "bbox_half_height": 1.0,
        "lon_range": [-180.0, 180.0],
        "lat_range": [-90.0, 90.0],
    },
    "storage": {"database_url": "sqlite:///data/virtual_tourist.db"},
    "workers": {"max_workers": 4},
}


def load_config(path: Optional[str] = None) -> Dict:
    """
    Read the YAML params file and merge each section over DEFAULTS.
    Missing file -> defaults. DATABASE_URL env overrides storage.database_url.
    """
    cfg = copy.deepcopy(DEFAULTS)
    p = Path(path or DEFAULT_CONFIG_PATH)
    if p.exists():
        with p.open("r") as f:
            user = yaml.safe_load(f) or {}
        if not isinstance(user, dict):
            raise ValueError(f"{p}: expected a mapping at top level")
        for section, values in user.items():
            if isinstance(values, dict) and isinstance(cfg.get(section), dict):
                cfg[section].update(values)
            else:
                cfg[section] = values

    db_env = os.getenv("DATABASE_URL")
    if db_env:
        cfg["storage"]["database_url"] = db_env
    return cfg
