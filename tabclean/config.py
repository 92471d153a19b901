# tabclean/config.py
import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)

OUTLIER_POLICIES = ('replace', 'drop')
LABEL_POLICIES = ('keep', 'drop')


def _flag(value: str) -> bool:
    return value.lower() == 'true'


# Environment variable -> (config section or None for top level, attribute, converter)
ENVIRONMENT_OVERRIDES = {
    "OUTLIER_POLICY": ("cleaning", "OUTLIER_POLICY", str.lower),
    "LABEL_POLICY": ("cleaning", "LABEL_POLICY", str.lower),
    "IQR_MULTIPLIER": ("cleaning", "IQR_MULTIPLIER", float),
    "MAX_OUTLIER_PASSES": ("cleaning", "MAX_OUTLIER_PASSES", int),
    "CLASSIFY_SAMPLE_ROWS": ("cleaning", "CLASSIFY_SAMPLE_ROWS", int),
    "CLEANING_DELEGATE_URL": ("delegate", "URL", str),
    "CLEANING_DELEGATE_TIMEOUT": ("delegate", "TIMEOUT", float),
    "API_HOST": ("api", "DEFAULT_HOST", str),
    "API_PORT": ("api", "DEFAULT_PORT", int),
    "API_WORKERS": ("api", "WORKERS", int),
    "LOG_LEVEL": (None, "logging_level", str.upper),
    "DEBUG_MODE": (None, "debug_mode", _flag),
}

@dataclass
class PathConfig:
    """Configuration for project paths"""
    PROJECT_ROOT: Path
    DATA_DIR: Path
    SAMPLE_DATA_DIR: Path
    LOGS_DIR: Path
    TESTS_DIR: Path

@dataclass
class CleaningConfig:
    """Configuration for one cleansing pipeline run"""
    OUTLIER_POLICY: str = 'replace'  # 'replace' or 'drop'
    LABEL_POLICY: str = 'keep'  # what to do with rows whose label is missing
    IQR_MULTIPLIER: float = 1.5
    MAX_OUTLIER_PASSES: int = 50
    MISSING_CATEGORY_CODE: int = -1
    CLASSIFY_SAMPLE_ROWS: Optional[int] = None  # None scans every row

    def validate(self) -> List[str]:
        """Return a list of problems with this configuration"""
        issues = []

        if self.OUTLIER_POLICY not in OUTLIER_POLICIES:
            issues.append(f"Unknown outlier policy: {self.OUTLIER_POLICY}")

        if self.LABEL_POLICY not in LABEL_POLICIES:
            issues.append(f"Unknown label policy: {self.LABEL_POLICY}")

        if self.IQR_MULTIPLIER < 0:
            issues.append(f"IQR multiplier must be >= 0: {self.IQR_MULTIPLIER}")

        if self.MAX_OUTLIER_PASSES < 1:
            issues.append(f"Max outlier passes must be >= 1: {self.MAX_OUTLIER_PASSES}")

        if self.MISSING_CATEGORY_CODE >= 0:
            issues.append(f"Missing category code must be negative: {self.MISSING_CATEGORY_CODE}")

        if self.CLASSIFY_SAMPLE_ROWS is not None and self.CLASSIFY_SAMPLE_ROWS < 1:
            issues.append(f"Classifier sample rows must be >= 1: {self.CLASSIFY_SAMPLE_ROWS}")

        return issues

@dataclass
class DelegateConfig:
    """Configuration for the external cleaning service"""
    URL: Optional[str]
    TIMEOUT: float

@dataclass
class DataValidationConfig:
    """Configuration for input validation"""
    MAX_FILE_SIZE_MB: int
    MAX_REQUEST_SIZE: int  # bytes of CSV text accepted per request
    SUPPORTED_FILE_FORMATS: List[str]

@dataclass
class ApiConfig:
    """Configuration for the HTTP API"""
    DEFAULT_PORT: int
    DEFAULT_HOST: str
    WORKERS: int
    ENABLE_CORS: bool
    ALLOWED_ORIGINS: List[str]

class Config:
    """Central configuration manager for the cleaning service"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            config_file: Optional path to JSON config file to override defaults
        """
        self._load_default_config()

        if config_file and os.path.exists(config_file):
            self._load_config_file(config_file)

        self._load_environment_variables()

    def _load_default_config(self):
        """Load default configuration values"""

        # Project paths
        project_root = Path(__file__).parent.parent
        self.paths = PathConfig(
            PROJECT_ROOT=project_root,
            DATA_DIR=project_root / "data",
            SAMPLE_DATA_DIR=project_root / "data" / "sample",
            LOGS_DIR=project_root / "logs",
            TESTS_DIR=project_root / "tests"
        )

        self.cleaning = CleaningConfig()

        self.delegate = DelegateConfig(
            URL=None,
            TIMEOUT=30.0
        )

        self.data_validation = DataValidationConfig(
            MAX_FILE_SIZE_MB=50,
            MAX_REQUEST_SIZE=50 * 1024 * 1024,  # 50MB, same as the dashboard backend
            SUPPORTED_FILE_FORMATS=['.csv']
        )

        self.api = ApiConfig(
            DEFAULT_PORT=8000,
            DEFAULT_HOST="0.0.0.0",
            WORKERS=1,
            ENABLE_CORS=True,
            ALLOWED_ORIGINS=["*"]
        )

        # Additional settings
        self.logging_level = "INFO"
        self.debug_mode = False

    def _load_config_file(self, config_file: str):
        """Load configuration from JSON file"""
        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)

            # Update configurations with values from file
            for section, values in config_data.items():
                if hasattr(self, section):
                    config_obj = getattr(self, section)
                    if not isinstance(values, dict):
                        setattr(self, section, values)
                        continue
                    for key, value in values.items():
                        if hasattr(config_obj, key):
                            setattr(config_obj, key, Path(value) if section == 'paths' else value)

        except (OSError, ValueError) as e:
            logger.warning(f"Could not load config file {config_file}: {e}")

    def _load_environment_variables(self):
        """Load configuration from environment variables"""
        for variable, (section, key, convert) in ENVIRONMENT_OVERRIDES.items():
            value = os.getenv(variable)
            if not value:
                continue
            target = getattr(self, section) if section else self
            try:
                setattr(target, key, convert(value))
            except ValueError:
                raise ValueError(f"Invalid value for {variable}: {value!r}")

    def create_directories(self):
        """Create necessary directories if they don't exist"""
        directories = [
            self.paths.DATA_DIR,
            self.paths.SAMPLE_DATA_DIR,
            self.paths.LOGS_DIR
        ]

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def save_config(self, config_file: str):
        """Save current configuration to JSON file"""
        config_dict = {}

        for section in ['paths', 'cleaning', 'delegate', 'data_validation', 'api']:
            config_dict[section] = {
                key: str(value) if isinstance(value, Path) else value
                for key, value in asdict(getattr(self, section)).items()
            }

        config_dict['logging_level'] = self.logging_level
        config_dict['debug_mode'] = self.debug_mode

        with open(config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = self.cleaning.validate()

        if self.delegate.TIMEOUT <= 0:
            issues.append(f"Invalid delegate timeout: {self.delegate.TIMEOUT}")

        if self.data_validation.MAX_FILE_SIZE_MB <= 0:
            issues.append(f"Invalid max file size: {self.data_validation.MAX_FILE_SIZE_MB}")

        if self.data_validation.MAX_REQUEST_SIZE <= 0:
            issues.append(f"Invalid max request size: {self.data_validation.MAX_REQUEST_SIZE}")

        if not 0 < self.api.DEFAULT_PORT < 65536:
            issues.append(f"Invalid API port: {self.api.DEFAULT_PORT}")

        return issues

    def effective_log_level(self) -> str:
        """Log level to run with; debug mode forces DEBUG"""
        return "DEBUG" if self.debug_mode else self.logging_level

    def __str__(self) -> str:
        """String representation of configuration"""
        return f"Config(outlier_policy={self.cleaning.OUTLIER_POLICY}, debug={self.debug_mode})"

# Global configuration instance
_config = None

def get_config(config_file: Optional[str] = None) -> Config:
    """Get global configuration instance (singleton pattern)"""
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config

def reload_config(config_file: Optional[str] = None) -> Config:
    """Reload configuration (useful for testing)"""
    global _config
    _config = Config(config_file)
    return _config

# Example configuration file template
CONFIG_TEMPLATE: Dict[str, Any] = {
    "cleaning": {
        "OUTLIER_POLICY": "replace",
        "LABEL_POLICY": "keep",
        "IQR_MULTIPLIER": 1.5
    },
    "delegate": {
        "URL": "http://localhost:8001",
        "TIMEOUT": 30
    },
    "api": {
        "DEFAULT_PORT": 8000,
        "WORKERS": 1
    }
}

def create_config_template(output_file: str):
    """Create a configuration template file"""
    with open(output_file, 'w') as f:
        json.dump(CONFIG_TEMPLATE, f, indent=2)
    logger.info(f"Configuration template created: {output_file}")
