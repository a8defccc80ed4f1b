import copy
import json
from typing import Dict, Any

from polylingo.core import database as db
from polylingo.core.schema import initialize_database
from polylingo.logger import get_logger, set_log_mode

logger = get_logger(__name__)

# Provider configuration constants
BUILTIN_PROVIDERS = ["gemini", "deepl", "mymemory"]

BUILTIN_PROVIDER_DISPLAY_NAMES = {
    "gemini": "Gemini",
    "deepl": "DeepL",
    "mymemory": "MyMemory",
}

# Providers that work without an API key
KEYLESS_PROVIDERS = ["mymemory"]

API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a professional translator. Preserve all HTML tags, classes, IDs, and "
    "WordPress shortcodes exactly as they appear. Only translate the text content between tags."
)

# Default configuration template
DEFAULT_CONFIG = {
    "source_language": "en",
    "target_languages": [],
    "translation_provider": "gemini",
    "system_instruction": DEFAULT_SYSTEM_INSTRUCTION,
    "gemini": {
        "api_key": API_KEY_PLACEHOLDER,
        "model": "gemini-2.5-flash",
        "timeout": 120,
        "api_url": "https://generativelanguage.googleapis.com/v1beta/models",
    },
    "deepl": {
        "api_key": API_KEY_PLACEHOLDER,
        "timeout": 60,
        "api_url": "",  # empty: derived from the key (":fx" keys use the free endpoint)
    },
    "mymemory": {
        "timeout": 30,
        "api_url": "https://api.mymemory.translated.net/get",
    },
    "wordpress": {
        "url": "",
        "username": "",
        "password": "",
        "timeout": 60,
    },
    "scheduler": {
        "max_parallel_jobs": 2,
        "max_requests_per_minute": 10,
        "base_delay": 2.0,  # seconds, doubled on every retry
        "max_retries": 3,
        "auto_publish": True,
    },
    "log_mode": "info",
}


def is_placeholder(value: Any) -> bool:
    """True for empty or template credentials."""
    return not value or not str(value).strip() or value == API_KEY_PLACEHOLDER


def merge_defaults(config: Dict[str, Any], defaults: Dict[str, Any] = None) -> Dict[str, Any]:
    """Return a copy of config with every missing key filled from defaults (nested dicts merged)."""
    defaults = DEFAULT_CONFIG if defaults is None else defaults
    merged = copy.deepcopy(defaults)
    for key, value in (config or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_defaults(value, merged[key])
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def initialize_app():
    """
    Initialize the application.
    This function is called on first run or when performing a factory reset.
    It creates the database and default configuration in database.
    """
    logger.info("Initializing application...")

    initialize_database()
    logger.info("Database initialized")

    try:
        existing_config = db.get_app_config('config')
        if not existing_config:
            logger.info("No config in database, initializing default config")
            save_config(DEFAULT_CONFIG)
        else:
            logger.debug("Config already exists in database")
    except Exception as e:
        logger.error(f"Failed to check/initialize config in database: {e}")
        logger.warning("Attempting to save default config anyway...")
        try:
            save_config(DEFAULT_CONFIG)
        except Exception as save_error:
            logger.error(f"Failed to save default config: {save_error}")
            logger.warning("Application will use in-memory default configuration")

    set_log_mode(load_config().get("log_mode", "info"))
    logger.info("Application initialization complete")


def load_config() -> Dict[str, Any]:
    """Load the configuration from database, with defaults filled in."""
    try:
        config_json = db.get_app_config('config')
        if config_json:
            config = merge_defaults(json.loads(config_json))
            logger.debug("Configuration loaded from database")
            return config
        logger.info("No config in database, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)
    except Exception as e:
        logger.error(f"Failed to load config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any]):
    """Save the configuration to database."""
    try:
        config_json = json.dumps(config, ensure_ascii=False)
        db.set_app_config('config', config_json)
        logger.info("Configuration saved to database")
    except Exception as e:
        logger.error(f"Failed to save config to database: {e}")
        raise


def validate_config(config: Dict[str, Any]) -> str:
    """Return an error message for a structurally invalid config, or "" when it is usable."""
    provider = config.get("translation_provider")
    if provider not in BUILTIN_PROVIDERS:
        return f"Unknown translation provider: {provider}"

    targets = config.get("target_languages", [])
    if not isinstance(targets, list) or not all(isinstance(t, str) and t.strip() for t in targets):
        return "target_languages must be a list of language codes"

    scheduler = config.get("scheduler", {})
    for key in ("max_parallel_jobs", "max_requests_per_minute"):
        value = scheduler.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            return f"scheduler.{key} must be a positive integer"
    max_retries = scheduler.get("max_retries")
    if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0:
        return "scheduler.max_retries must be zero or a positive integer"
    base_delay = scheduler.get("base_delay")
    if not isinstance(base_delay, (int, float)) or isinstance(base_delay, bool) or base_delay < 0:
        return "scheduler.base_delay must be a non-negative number"

    if config.get("log_mode", "info") not in ("off", "info", "debug"):
        return "log_mode must be one of off, info, debug"
    return ""


def factory_reset():
    """
    Perform a factory reset.
    WARNING: This will delete all jobs, logs and settings.
    """
    logger.warning("Performing factory reset...")

    if db.DB_FILE.exists():
        db.DB_FILE.unlink()
        logger.info("Database deleted")

    initialize_app()
    logger.info("Factory reset complete")
