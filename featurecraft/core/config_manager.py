"""Configuration management"""
import copy
import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'locale': 'en',
    'export': {
        'indent': '  ',
    },
    'step_definitions': {
        'comment_marker': '# featurecraft',
        'file_glob': '**/*.rb',
    },
    'features': {
        'file_glob': '**/*.feature',
    },
}


class ConfigManager:
    """Manages configuration loading and merging"""

    def __init__(self, config_path: str = 'config/config.yaml', environment: str = 'default'):
        self.config_path = Path(config_path)
        self.environment = environment
        self.config = copy.deepcopy(DEFAULT_CONFIG)

    def load_config(self) -> Dict[str, Any]:
        """Load defaults, the main config file and the environment config, in that order"""
        load_dotenv()

        if self.config_path.exists():
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.config = self._merge_configs(self.config, yaml.safe_load(f) or {})
        else:
            logger.debug(f"Config file not found, using defaults: {self.config_path}")

        env_config_path = self.config_path.parent / 'environments' / f'{self.environment}.yaml'
        if env_config_path.exists():
            with open(env_config_path, 'r', encoding='utf-8') as f:
                env_config = yaml.safe_load(f) or {}

                # Handle overrides section specially
                if 'overrides' in env_config:
                    overrides = env_config.pop('overrides')
                    self._apply_overrides(self.config, overrides)

                self.config = self._merge_configs(self.config, env_config)
        elif self.environment != 'default':
            logger.warning(f"Environment config not found: {env_config_path}")

        self.config = self._process_env_vars(self.config)

        logger.debug(f"Configuration loaded for environment: {self.environment}")
        return self.config

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_overrides(self, base: Dict, overrides: Dict) -> None:
        """Apply overrides from environment config to base config"""
        for section, values in overrides.items():
            if section in base and isinstance(values, dict) and isinstance(base[section], dict):
                base[section].update(values)
            else:
                base[section] = values

    def _process_env_vars(self, config: Any) -> Any:
        """Replace ${VAR} with environment variables"""
        if isinstance(config, dict):
            return {k: self._process_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._process_env_vars(item) for item in config]
        elif isinstance(config, str) and config.startswith('${') and config.endswith('}'):
            var_name = config[2:-1]
            return os.environ.get(var_name, config)
        else:
            return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)"""
        value = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
