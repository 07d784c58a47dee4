"""
Configuration handling for the food delivery analytics pipeline.
"""
import os
import logging
import configparser
from pathlib import Path
import pandas as pd
from dotenv import load_dotenv
from errors import ConfigurationError

load_dotenv()
# Load environment variables
POSTGRES_HOST = os.getenv("POSTGRES_HOST")
POSTGRES_PORT = os.getenv("POSTGRES_PORT")
POSTGRES_DB = os.getenv("POSTGRES_DB")
POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")

VALID_SOURCES = ('csv', 'database')

class Config:
    """Configuration manager for the analytics pipeline."""

    def __init__(self, config_file='config.ini'):
        """
        Initialize configuration from config file.
        """
        self.config = configparser.ConfigParser()

        # Set default values
        self._set_defaults()

        # Try to read from config file
        config_path = Path(config_file)
        if config_path.exists():
            self.config.read(config_path)
            self._setup_logging()
        else:
            print(f"Warning: Config file {config_file} not found. Using defaults.")

    def _set_defaults(self):
        """Set default configuration values."""
        self.config['DATABASE'] = {
            'type': 'postgresql',
            'name': POSTGRES_DB or '',
            'host': POSTGRES_HOST or '',
            'port': POSTGRES_PORT or '',
            'user': POSTGRES_USER or '',
            'password': POSTGRES_PASSWORD or ''
        }

        self.config['LOGGING'] = {
            'level': 'INFO',
            'file': 'logs/pipeline.log'
        }

        self.config['PATHS'] = {
            'input_dir': 'data/input',
            'output_dir': 'data/output'
        }

        self.config['PIPELINE'] = {
            'source': 'csv',
            'quality_check': 'true',
            'export_csv': 'false',
            'strict': 'false',
            'as_of_date': ''
        }

        self.config['REPORTS'] = {
            'enabled': '',
            'top_n': '5',
            'inactive_days': '90',
            'hvlf_max_orders': '3',
            'hvlf_min_spend': '3000',
            'rider_low_activity_threshold': '5'
        }

    def _setup_logging(self):
        """Configure logging based on settings."""
        log_config = self.config['LOGGING']
        log_level = getattr(logging, log_config.get('level', 'INFO').upper(), logging.INFO)
        log_file = log_config.get('file', 'logs/pipeline.log')

        # Create directory for log file if it doesn't exist
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_file),
                logging.StreamHandler()
            ]
        )

    def get_database_config(self):
        """
        Get database configuration.

        """
        return {
            'type': self.config['DATABASE'].get('type'),
            'name': self.config['DATABASE'].get('name'),
            'host': self.config['DATABASE'].get('host'),
            'port': self.config['DATABASE'].get('port'),
            'user': self.config['DATABASE'].get('user'),
            'password': self.config['DATABASE'].get('password')
        }

    def get_input_path(self, filename=None):
        """
        Get input directory or file path.

        """
        input_dir = self.config['PATHS'].get('input_dir', 'data/input')

        if filename:
            return os.path.join(input_dir, filename)
        return input_dir

    def get_output_path(self, filename=None):
        """
        Get output directory or file path.

        """
        output_dir = self.config['PATHS'].get('output_dir', 'data/output')

        # Create directory if it doesn't exist
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)

        if filename:
            return os.path.join(output_dir, filename)
        return output_dir

    def get_source(self):
        """
        Get the record source, either 'csv' or 'database'.
        """
        source = self.config['PIPELINE'].get('source', 'csv').strip().lower()
        if source not in VALID_SOURCES:
            raise ConfigurationError(
                f"Unsupported source '{source}', expected one of {VALID_SOURCES}"
            )
        return source

    def is_quality_check_enabled(self):
        """
        Check if data quality checks are enabled.

        """
        return self.config['PIPELINE'].getboolean('quality_check', True)

    def is_csv_export_enabled(self):
        return self.config['PIPELINE'].getboolean('export_csv', False)

    def is_strict(self):
        """
        Check if broken order references should abort the run instead of
        being skipped and counted.
        """
        return self.config['PIPELINE'].getboolean('strict', False)

    def get_as_of_date(self):
        """
        Get the reference date used as CURRENT_DATE by the reports.

        Falls back to today when no date is configured.
        """
        raw = self.config['PIPELINE'].get('as_of_date', '').strip()
        if not raw:
            return pd.Timestamp.today().normalize()
        try:
            as_of = pd.Timestamp(raw)
        except (ValueError, TypeError):
            raise ConfigurationError(f"Invalid as_of_date '{raw}'")
        if pd.isna(as_of):
            raise ConfigurationError(f"Invalid as_of_date '{raw}'")
        return as_of.normalize()

    def get_enabled_reports(self):
        """
        Get the list of report names to run, or None for all reports.
        """
        raw = self.config['REPORTS'].get('enabled', '').strip()
        if not raw:
            return None
        return [name.strip() for name in raw.split(',') if name.strip()]

    def get_report_parameters(self):
        """
        Get validated report parameters.

        Raises ConfigurationError for non-numeric or negative values, before
        any report is computed.
        """
        section = self.config['REPORTS']
        params = {
            'n': self._non_negative(section, 'top_n', int),
            'inactive_days': self._non_negative(section, 'inactive_days', int),
            'max_orders': self._non_negative(section, 'hvlf_max_orders', int),
            'min_spend': self._non_negative(section, 'hvlf_min_spend', float),
            'low_activity_threshold': self._non_negative(
                section, 'rider_low_activity_threshold', int
            ),
            'as_of': self.get_as_of_date(),
        }
        return params

    @staticmethod
    def _non_negative(section, option, cast):
        raw = section.get(option)
        try:
            value = cast(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(f"REPORTS.{option} must be numeric, got '{raw}'")
        if value < 0:
            raise ConfigurationError(f"REPORTS.{option} must be non-negative, got {value}")
        return value
