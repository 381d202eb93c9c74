"""
Config cache module.

Keeps the protocol configuration (YAML) and deployment seed data (JSON) in
memory so they are read from disk once per process.
"""

import json
import os
import yaml
from typing import Dict, Any, Optional
from threading import Lock

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "config")


class ConfigCache:
    """Thread-safe configuration cache."""

    def __init__(self):
        self._protocol: Optional[Dict[str, Any]] = None
        self._seed_data: Optional[Dict[str, Any]] = None
        self._lock = Lock()

    def get_protocol_config(self) -> Dict[str, Any]:
        """Get cached protocol config, loading from disk if not cached."""
        if self._protocol is None:
            with self._lock:
                if self._protocol is None:  # Double-check locking
                    config_file = os.getenv(
                        "ASSETCOVER_CONFIG",
                        os.path.join(CONFIG_DIR, "protocol.yaml")
                    )
                    with open(config_file, 'r') as f:
                        self._protocol = yaml.safe_load(f) or {}
        return self._protocol

    def get_seed_data(self) -> Dict[str, Any]:
        """Get cached seed data; empty when no seed file is shipped."""
        if self._seed_data is None:
            with self._lock:
                if self._seed_data is None:
                    seed_file = os.path.join(CONFIG_DIR, "seed.json")
                    if os.path.exists(seed_file):
                        with open(seed_file, 'r') as f:
                            self._seed_data = json.load(f)
                    else:
                        self._seed_data = {}
        return self._seed_data

    def get_pricing_params(self) -> Dict[str, Any]:
        """Pricing constants merged with the price-age bound."""
        config = self.get_protocol_config()
        params = dict(config.get("pricing", {}))
        params["max_price_age"] = config.get("price_cache", {}).get("max_age", 144)
        return params

    def get_limits(self) -> Dict[str, int]:
        return self.get_protocol_config().get("limits", {})

    def get_native_asset(self) -> Dict[str, Any]:
        return self.get_protocol_config().get("native", {"symbol": "STX", "decimals": 6})

    def clear_cache(self):
        """Clear all cached data (useful for testing)."""
        with self._lock:
            self._protocol = None
            self._seed_data = None


# Global cache instance
config_cache = ConfigCache()
