import json
import os
import logging
from typing import Dict, Any, List

from salonbook.core.config import settings

logger = logging.getLogger("salonbook")

def load_business_config(path: str = None) -> Dict[str, Any]:
    """
    Loads business configuration (name, currency, default catalog) from JSON file.
    Raises FileNotFoundError if config is missing.
    Returns: Dict containing config.
    """
    path = path or settings.BUSINESS_CONFIG_PATH
    if not os.path.exists(path):
        logger.critical(f"❌ Business config file '{path}' not found!")
        raise FileNotFoundError(f"Configuration file not found at {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
            logger.info(f"✅ Business config loaded for: {config.get('business_name', 'Unknown')}")
            return config
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Failed to parse business config JSON: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

def get_default_services(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Seed services used when neither the store nor the cache has a catalog."""
    return config.get("default_services", [])

def get_default_workers(config: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Seed workers; exactly one entry is expected to carry is_owner=true."""
    return config.get("default_workers", [])
