#!/usr/bin/env python
"""
Configuration module for Task Master
Handles user preferences, LLM settings, and environment overrides
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional
from colorama import Fore, Style
from dotenv import load_dotenv

# Load .env from the directory the user runs the command in
load_dotenv(dotenv_path=Path(os.getcwd()) / '.env', override=False)

# Environment variable -> (config key path, type)
ENV_OVERRIDES = {
    "MODEL": ("llm.model", str),
    "MAX_TOKENS": ("llm.max_tokens", int),
    "TEMPERATURE": ("llm.temperature", float),
    "PERPLEXITY_MODEL": ("research.model", str),
    "DEBUG": ("debug", bool),
    "LOG_LEVEL": ("logging.level", str),
    "DEFAULT_SUBTASKS": ("tasks.default_subtasks", int),
    "DEFAULT_PRIORITY": ("tasks.default_priority", str),
    "PROJECT_NAME": ("project.name", str),
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration manager for Task Master"""

    def __init__(self, config_dir: Optional[Path] = None):
        home_override = os.getenv("TASK_MASTER_HOME")
        if config_dir is None:
            config_dir = Path(home_override) if home_override else Path.home() / ".task-master"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.json"
        self.default_config = {
            "ui": {
                "colors_enabled": True,
                "quiet_mode": False,
                "progress_bars": True
            },
            "llm": {
                "provider": "google",
                "model": "gemini-2.0-flash",
                "temperature": 0.7,
                "max_tokens": 4000
            },
            "research": {
                "provider": "perplexity",
                "model": "sonar-medium-online"
            },
            "tasks": {
                "file": "tasks/tasks.json",
                "default_subtasks": 3,
                "default_priority": "medium"
            },
            "project": {
                "name": "Task Master",
                "version": "0.1.0"
            },
            "logging": {
                "level": "info"
            },
            "debug": False
        }
        self._config = None
        self._load_config()
        self._apply_env_overrides()

    def _load_config(self):
        """Load configuration from file or create default"""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    self._config = json.load(f)
                # Merge with defaults to ensure all keys exist
                self._config = self._merge_configs(self.default_config, self._config)
            else:
                self._config = self._merge_configs(self.default_config, {})
                self._save_config()
        except (OSError, ValueError) as e:
            print(f"{Fore.YELLOW}Warning: Could not load config file. Using defaults. Error: {e}{Style.RESET_ALL}")
            self._config = self._merge_configs(self.default_config, {})

    def _apply_env_overrides(self):
        """Environment variables win over values loaded from the config file"""
        for env_var, (key_path, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_var)
            if raw is None or raw == "":
                continue
            try:
                value = _parse_bool(raw) if cast is bool else cast(raw)
            except ValueError:
                print(f"{Fore.YELLOW}Warning: Ignoring invalid value for {env_var}: {raw!r}{Style.RESET_ALL}")
                continue
            self._set_in_memory(key_path, value)

    def _merge_configs(self, default: Dict, user: Dict) -> Dict:
        """Recursively merge user config with defaults"""
        result = {}
        for key, value in default.items():
            result[key] = self._merge_configs(value, {}) if isinstance(value, dict) else value
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result

    def _save_config(self):
        """Save current configuration to file"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            print(f"{Fore.RED}Error saving config: {e}{Style.RESET_ALL}")

    def _set_in_memory(self, key_path: str, value: Any):
        keys = key_path.split('.')
        config = self._config
        for key in keys[:-1]:
            if not isinstance(config.get(key), dict):
                config[key] = {}
            config = config[key]
        config[keys[-1]] = value

    def get(self, key_path: str, default=None):
        """Get configuration value using dot notation (e.g., 'llm.temperature')"""
        keys = key_path.split('.')
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any):
        """Set configuration value using dot notation"""
        self._set_in_memory(key_path, value)
        self._save_config()

    def reset_to_defaults(self):
        """Reset configuration to defaults"""
        self._config = self._merge_configs(self.default_config, {})
        self._save_config()

    @property
    def debug(self) -> bool:
        return bool(self.get('debug', False))


# Global config instance
config = Config()
