#!/usr/bin/env python3
"""
Configuration management for the economic calendar pipeline
Loads settings from environment variables and .env files
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CURRENCIES = ('USD', 'EUR', 'GBP', 'JPY', 'AUD', 'CAD', 'CHF', 'NZD')
DEFAULT_CORRELATION_IMPACTS = ('High', 'Medium')
OUTPUT_MODES = ('csv', 'db', 'both')


def _mask_value(value):
    """Return a lightly masked representation of a credential"""
    if not value:
        return "***"
    if len(value) <= 2:
        return f"{value[0]}*" if len(value) == 2 else "*"
    return f"{value[0]}***{value[-1]}"


def mask_host(host):
    """Mask the final segment of an IP/domain so logs don't reveal the exact target"""
    if not host:
        return "***"
    parts = host.split('.')
    if len(parts) > 1:
        parts[-1] = "***"
        return '.'.join(parts)
    if len(host) <= 4:
        return host[0] + "**"
    return f"{host[:2]}***{host[-1:]}"


def describe_db_target(host, port, database, user=None):
    """Generate a masked DSN string suitable for logging"""
    masked_host = mask_host(host)
    user_part = f"{_mask_value(user)}@" if user else ""
    return f"{user_part}{masked_host}:{port}/{database}"


def parse_list(value, upper=False):
    """Split a comma/space separated env value into a tuple of tokens"""
    if not value:
        return ()
    items = [item.strip() for item in value.replace(';', ',').replace(' ', ',').split(',')]
    items = [item for item in items if item]
    if upper:
        items = [item.upper() for item in items]
    return tuple(items)


class Config:
    """Configuration manager for calendar ingestion and trade correlation"""

    def __init__(self, env_file=None):
        """Initialize configuration from environment"""
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)
            logger.info(f"Loaded environment from: {env_file}")

        # Database Configuration
        self.POSTGRES_HOST = os.getenv('POSTGRES_HOST', 'localhost')
        self.POSTGRES_PORT = int(os.getenv('POSTGRES_PORT', 5432))
        self.POSTGRES_DB = os.getenv('POSTGRES_DB', 'econcal')
        self.POSTGRES_USER = os.getenv('POSTGRES_USER', 'postgres')
        self.POSTGRES_PASSWORD = os.getenv('POSTGRES_PASSWORD', 'postgres')
        self.POSTGRES_POOL_SIZE = int(os.getenv('POSTGRES_POOL_SIZE', 5))

        # Extraction Configuration
        self.CALENDAR_CURRENCIES = parse_list(os.getenv('CALENDAR_CURRENCIES'), upper=True) or DEFAULT_CURRENCIES
        self.TITLE_CELL_INDEX = int(os.getenv('TITLE_CELL_INDEX', 4))

        # Correlation Configuration
        self.CORRELATION_CURRENCIES = parse_list(os.getenv('CORRELATION_CURRENCIES'), upper=True)
        impacts = parse_list(os.getenv('CORRELATION_IMPACTS'))
        self.CORRELATION_IMPACTS = tuple(i.capitalize() for i in impacts) or DEFAULT_CORRELATION_IMPACTS

        # Output Configuration
        self.OUTPUT_MODE = os.getenv('OUTPUT_MODE', 'both')  # 'csv', 'db', or 'both'
        self.CSV_OUTPUT_DIR = os.getenv('CSV_OUTPUT_DIR', 'csv_output')

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_FILE = os.getenv('LOG_FILE', 'econcal.log')

    def get_db_config(self):
        """Get database configuration dict"""
        return {
            'host': self.POSTGRES_HOST,
            'port': self.POSTGRES_PORT,
            'database': self.POSTGRES_DB,
            'user': self.POSTGRES_USER,
            'password': self.POSTGRES_PASSWORD,
            'pool_size': self.POSTGRES_POOL_SIZE
        }

    def get_extractor_config(self):
        """Get keyword arguments for CalendarTableExtractor"""
        return {
            'currencies': self.CALENDAR_CURRENCIES,
            'title_index': self.TITLE_CELL_INDEX,
        }

    def get_correlation_config(self):
        """Get currency/impact filters for trade correlation"""
        return {
            'currencies': self.CORRELATION_CURRENCIES or self.CALENDAR_CURRENCIES,
            'impacts': self.CORRELATION_IMPACTS,
        }

    def validate(self):
        """Validate critical configuration"""
        errors = []

        if not self.POSTGRES_PASSWORD:
            errors.append("POSTGRES_PASSWORD is not set")

        for code in self.CALENDAR_CURRENCIES:
            if len(code) != 3 or not code.isalpha():
                errors.append(f"CALENDAR_CURRENCIES contains invalid code '{code}'")

        unknown = [c for c in self.CORRELATION_CURRENCIES if c not in self.CALENDAR_CURRENCIES]
        if unknown:
            errors.append(f"CORRELATION_CURRENCIES not in recognized set: {', '.join(unknown)}")

        bad_impacts = [i for i in self.CORRELATION_IMPACTS if i not in ('High', 'Medium', 'Low', 'None')]
        if bad_impacts:
            errors.append(f"CORRELATION_IMPACTS contains unknown levels: {', '.join(bad_impacts)}")

        if self.OUTPUT_MODE not in OUTPUT_MODES:
            errors.append(f"OUTPUT_MODE must be one of {', '.join(OUTPUT_MODES)}")

        if self.TITLE_CELL_INDEX < 0:
            errors.append("TITLE_CELL_INDEX must not be negative")

        if errors:
            logger.error("Configuration validation failed:")
            for error in errors:
                logger.error(f"  - {error}")
            return False

        return True

    def __repr__(self):
        """String representation of configuration"""
        return f"""
Economic Calendar Configuration:
  Database: {self.describe_db()}
  Currencies: {', '.join(self.CALENDAR_CURRENCIES)}
  Correlation Impacts: {', '.join(self.CORRELATION_IMPACTS)}
  Output Mode: {self.OUTPUT_MODE}
  CSV Output Dir: {self.CSV_OUTPUT_DIR}
  Log Level: {self.LOG_LEVEL}
        """

    def describe_db(self):
        """Return masked connection description for safe logging"""
        return describe_db_target(
            self.POSTGRES_HOST,
            self.POSTGRES_PORT,
            self.POSTGRES_DB,
            self.POSTGRES_USER
        )


def get_config(env_file=None):
    """Factory function to get configuration instance"""
    if env_file is None:
        possible_paths = [
            Path.cwd() / '.env',
            Path(__file__).parent.parent.parent / '.env'
        ]
        for path in possible_paths:
            if path.exists():
                env_file = str(path)
                break

    config = Config(env_file)

    if not config.validate():
        logger.warning("Configuration validation failed, using defaults")

    return config
