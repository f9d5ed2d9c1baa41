"""
Configuration loader for the router connect server
Loads and validates configuration from YAML files
"""

import os
import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

from errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation.
    Path defaults to the CONFIG_FILE environment variable, then config/config.yaml
    """
    config_path = config_path or os.environ.get('CONFIG_FILE', DEFAULT_CONFIG_PATH)
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    required_sections = ['database']

    for section in required_sections:
        if section not in config:
            raise ConfigurationError(f"Missing required configuration section: {section}")

    # Validate database section
    db = config['database']
    required_db_fields = ['host', 'port', 'database', 'username', 'password']
    for field in required_db_fields:
        if field not in db:
            raise ConfigurationError(f"Missing required database field: {field}")

    # Validate network section
    network = config.get('network') or {}
    for key in ('curated_ips', 'extended_ips', 'subnets'):
        value = network.get(key)
        if value is not None and not (isinstance(value, list) and all(isinstance(v, str) for v in value)):
            raise ConfigurationError(f"network.{key} must be a list of strings")

    concurrency = network.get('max_concurrent_probes')
    if concurrency is not None and (not isinstance(concurrency, int) or concurrency < 1):
        raise ConfigurationError("network.max_concurrent_probes must be a positive integer")

    # Validate automation service URL if enabled
    automation = config.get('automation') or {}
    if automation.get('enabled') and not automation.get('base_url'):
        raise ConfigurationError("automation.base_url is required when automation is enabled")

    # Validate timezone
    timezone_name = (config.get('logging') or {}).get('timezone')
    if timezone_name and timezone_name not in pytz.all_timezones_set:
        raise ConfigurationError(f"Unknown logging.timezone: {timezone_name}")

def _apply_section_defaults(config: Dict, section: str, defaults: Dict) -> None:
    if not config.get(section):
        config[section] = {}
    for key, default_value in defaults.items():
        if key not in config[section]:
            config[section][key] = default_value

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Network defaults; curated/extended lists fall back to the built-in tables
    _apply_section_defaults(config, 'network', {
        'request_timeout': 3,
        'discovery_timeout': 10,
        'max_concurrent_probes': 32,
        'include_extended': False,
        'subnets': [],
        'user_agent': 'RouterApp/1.0',
        'require_router_signals': False,
        'scheduling_slack_seconds': 0.5
    })

    # Credential testing defaults
    _apply_section_defaults(config, 'credentials', {
        'request_timeout': 5,
        'landing_page_timeout': 8,
        'max_guesses': 5
    })

    # Suggestion service defaults
    _apply_section_defaults(config, 'suggestions', {
        'enabled': True,
        'base_url': 'https://generativelanguage.googleapis.com/v1beta',
        'model': 'gemini-2.5-flash',
        'timeout_seconds': 30,
        'cost_per_request': None,
        'html_excerpt_chars': 2000
    })

    # Automation service defaults
    _apply_section_defaults(config, 'automation', {
        'enabled': False,
        'base_url': None,
        'timeout_seconds': 120,
        'ssl_verify': True
    })

    # API defaults
    _apply_section_defaults(config, 'api', {
        'host': '0.0.0.0',
        'port': 8000,
        'cors_origins': ['*']
    })

    # Logging defaults
    _apply_section_defaults(config, 'logging', {
        'level': 'INFO',
        'file': 'logs/router_server.log',
        'console_output': True,
        'timezone': 'UTC'
    })

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a configured timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    timezone_name = log_config.get('timezone', 'UTC')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, timezone_name)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )

    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logging.getLogger().addHandler(console_handler)

    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    logger.info(f"Logging configured ({timezone_name} timestamps): level={level}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "network": {
            "request_timeout": 3,
            "discovery_timeout": 10,
            "max_concurrent_probes": 32,
            "include_extended": False,
            "subnets": ["192.168.1.1-192.168.1.20"],
            "user_agent": "RouterApp/1.0",
            "require_router_signals": False,
            "scheduling_slack_seconds": 0.5
        },
        "credentials": {
            "request_timeout": 5,
            "landing_page_timeout": 8,
            "max_guesses": 5
        },
        "suggestions": {
            "enabled": True,
            "base_url": "https://generativelanguage.googleapis.com/v1beta",
            "model": "gemini-2.5-flash",
            "api_key": "your-api-key-here",     # or SUGGESTION_API_KEY env var
            "timeout_seconds": 30,
            "cost_per_request": 0.002,
            "html_excerpt_chars": 2000
        },
        "automation": {
            "enabled": False,
            "base_url": "http://localhost:3100",
            "timeout_seconds": 120,
            "ssl_verify": True
        },
        "database": {
            "host": "localhost",
            "port": 5432,
            "database": "router_db",
            "username": "postgres",
            "password": "postgres"
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/router_server.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
