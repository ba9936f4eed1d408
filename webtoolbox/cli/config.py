"""Configuration system for the web-toolbox CLI.

Sources are merged with the following precedence:
CLI flags > environment variables > config file > defaults

This module also owns the caller-side policies the capture layer relies on:
target resolution and the timeout/delay coupling.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..capture.errors import ConfigurationError, RemoteEndpointFormatError
from ..capture.session import parse_remote_endpoint

logger = logging.getLogger(__name__)

# Seconds kept free after the blind delay for navigation and actions
TIMEOUT_MARGIN = 10
LARGE_DELAY_WARNING = 60

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class BrowserSection(BaseModel):
    """Browser and timing options."""
    timeout: float = Field(default=10, gt=0, description="Session timeout in seconds")
    delay: float = Field(default=2, description="Blind rendering delay in seconds")
    remote_debugging_port: Optional[str] = Field(default=None, description="host:port of a running Chrome")
    headful: bool = Field(default=False, description="Launch a visible local browser")

    @field_validator("delay")
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError(f"delay cannot be negative: {v:g}")
        return v


class ActionSection(BaseModel):
    """Which captures to perform."""
    console_log: bool = Field(default=False, description="Capture console logs")
    screenshot: bool = Field(default=False, description="Save a full-page screenshot")
    pdf: bool = Field(default=False, description="Save a PDF")
    body: bool = Field(default=False, description="Print body text")
    selector: Optional[str] = Field(default=None, description="Print text for a CSS selector")
    continue_on_error: bool = Field(default=False, description="Run remaining actions after a failure")

    @property
    def any_requested(self) -> bool:
        return self.console_log or self.screenshot or self.pdf or self.body or bool(self.selector)


class ScriptSection(BaseModel):
    """JavaScript injected after navigation."""
    js: Optional[str] = Field(default=None, description="Inline JavaScript")
    js_file: Optional[Path] = Field(default=None, description="File containing JavaScript")


class OutputSection(BaseModel):
    """Output and logging options."""
    output_dir: Path = Field(default=Path("."), description="Directory for screenshots and PDFs")
    log_level: str = Field(default="info", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        if v.lower() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return v.lower()


class ToolboxConfiguration(BaseModel):
    """Complete CLI configuration."""

    target: Optional[str] = Field(default=None, description="URL or local file to capture")

    browser: BrowserSection = Field(default_factory=BrowserSection)
    actions: ActionSection = Field(default_factory=ActionSection)
    script: ScriptSection = Field(default_factory=ScriptSection)
    output: OutputSection = Field(default_factory=OutputSection)

    # Metadata
    config_file_path: Optional[Path] = Field(default=None, description="Source config file")
    loaded_from: List[str] = Field(default_factory=list, description="Configuration sources")

    def load_script(self) -> Optional[str]:
        """Return the script text from whichever source is configured."""
        if self.script.js:
            return self.script.js
        if self.script.js_file:
            try:
                return self.script.js_file.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(
                    f"failed to read JavaScript file {self.script.js_file}: {e}",
                    value=str(self.script.js_file)
                ) from e
        return None


class ConfigurationLoader:
    """Loads and merges configuration from multiple sources with proper precedence."""

    ENV_PREFIX = "WEBTOOLBOX_"

    # Default configuration file names (searched in order)
    DEFAULT_CONFIG_FILES = [
        "webtoolbox.yaml",
        "webtoolbox.yml",
        ".webtoolbox.yaml",
        ".webtoolbox.yml",
        "webtoolbox.json",
        ".webtoolbox.json",
    ]

    ENV_MAPPING = {
        "TIMEOUT": "browser.timeout",
        "DELAY": "browser.delay",
        "REMOTE_DEBUGGING_PORT": "browser.remote_debugging_port",
        "HEADFUL": "browser.headful",
        "CONTINUE_ON_ERROR": "actions.continue_on_error",
        "JS_FILE": "script.js_file",
        "OUTPUT_DIR": "output.output_dir",
        "LOG_LEVEL": "output.log_level",
    }

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self.loaded_sources: List[str] = []

    def load_configuration(
        self,
        config_file: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        search_paths: Optional[List[Path]] = None
    ) -> ToolboxConfiguration:
        """Load configuration with proper precedence.

        Args:
            config_file: Explicitly specified config file
            cli_overrides: CLI flag overrides
            search_paths: Paths to search for config files when none is given

        Returns:
            Merged configuration

        Raises:
            ConfigurationError: On unreadable files or invalid values
        """
        self.loaded_sources = ["defaults"]
        config_data: Dict[str, Any] = {}

        if config_file:
            if not config_file.exists():
                raise ConfigurationError(f"Configuration file not found: {config_file}", value=str(config_file))
            config_data = self._merge_config(config_data, self._load_config_file(config_file))
            self.loaded_sources.append(f"config file: {config_file}")
        else:
            discovered = self._discover_config_file(search_paths or [Path.cwd()])
            if discovered:
                path, file_config = discovered
                config_data = self._merge_config(config_data, file_config)
                config_file = path
                self.loaded_sources.append(f"auto-discovered: {path}")

        env_config = self._load_environment_variables()
        if env_config:
            config_data = self._merge_config(config_data, env_config)
            self.loaded_sources.append("environment variables")

        if cli_overrides:
            config_data = self._merge_config(config_data, cli_overrides)
            self.loaded_sources.append("CLI flags")

        config_data["loaded_from"] = self.loaded_sources
        if config_file:
            config_data["config_file_path"] = config_file

        try:
            return ToolboxConfiguration(**config_data)
        except ValidationError as e:
            messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
            raise ConfigurationError("; ".join(messages)) from e

    def _discover_config_file(self, search_paths: List[Path]):
        for search_path in search_paths:
            for config_filename in self.DEFAULT_CONFIG_FILES:
                config_path = search_path / config_filename
                if config_path.is_file():
                    return config_path, self._load_config_file(config_path)
        return None

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        suffix = config_path.suffix.lower()
        if suffix not in (".yaml", ".yml", ".json"):
            raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}", value=str(config_path))

        try:
            content = config_path.read_text(encoding="utf-8")
            if suffix == ".json":
                data = json.loads(content)
            else:
                data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error loading config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        for suffix, config_path in self.ENV_MAPPING.items():
            env_value = self.environ.get(f"{self.ENV_PREFIX}{suffix}")
            if env_value is not None:
                self._set_nested_value(config, config_path, self._convert_env_value(env_value, config_path))
        return config

    def _convert_env_value(self, value: str, config_path: str) -> Any:
        if config_path.endswith((".headful", ".continue_on_error")):
            return value.lower() in ("true", "1", "yes", "on")
        if config_path.endswith((".js_file", ".output_dir")):
            return Path(value) if value else None
        # numeric strings are coerced by pydantic
        return value

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        keys = path.split(".")
        current = config
        for key in keys[:-1]:
            current = current.setdefault(key, {})
        current[keys[-1]] = value

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries, with override taking precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result


def load_configuration(
    config_file: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    search_paths: Optional[List[Path]] = None
) -> ToolboxConfiguration:
    """Convenience function to load configuration."""
    loader = ConfigurationLoader()
    return loader.load_configuration(config_file, cli_overrides, search_paths)


def print_configuration(config: ToolboxConfiguration, format: str = "yaml") -> str:
    """Render the effective configuration as YAML or JSON."""
    config_dict = config.model_dump(mode="json", exclude={"loaded_from", "config_file_path"})
    if format.lower() == "json":
        return json.dumps(config_dict, indent=2)
    return yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=True)


def validate_configuration(config: ToolboxConfiguration) -> List[str]:
    """Validate cross-field rules and return human-readable errors (empty if valid)."""
    errors = []

    if not config.target or not config.target.strip():
        errors.append("target cannot be empty")

    if not config.actions.any_requested:
        errors.append(
            "at least one action must be specified "
            "(--body, --screenshot, --printtopdf, --consolelog, or --gettextbycssselector)"
        )

    if config.script.js and config.script.js_file:
        errors.append("--js and --js-file are mutually exclusive")

    if config.script.js_file and not config.script.js_file.is_file():
        errors.append(f"JavaScript file not found: {config.script.js_file}")

    if config.browser.remote_debugging_port:
        try:
            parse_remote_endpoint(config.browser.remote_debugging_port)
        except RemoteEndpointFormatError as e:
            errors.append(e.message)

    return errors


def adjust_timeout(timeout: float, delay: float, log: Optional[logging.Logger] = None) -> float:
    """Raise the timeout so at least TIMEOUT_MARGIN seconds remain after the delay.

    The comparison is inclusive: timeout <= delay + margin triggers the adjustment.
    """
    log = log or logger
    if delay > LARGE_DELAY_WARNING:
        log.warning(f"Large delay value specified: delay={delay:g}s")

    if timeout <= delay + TIMEOUT_MARGIN:
        new_timeout = delay + TIMEOUT_MARGIN
        log.info(
            f"Timeout automatically adjusted to accommodate delay: "
            f"original_timeout={timeout:g}s delay={delay:g}s new_timeout={new_timeout:g}s"
        )
        return new_timeout
    return timeout


def resolve_target(raw: str, log: Optional[logging.Logger] = None) -> str:
    """Turn user input into an address the browser can load.

    Existing paths become absolute file:// URIs, http(s):// and file:// input is
    passed through, anything else is treated as a host and given https://.
    """
    log = log or logger
    if raw is None or not raw.strip():
        raise ConfigurationError("target cannot be empty", value=raw)

    path = Path(raw)
    try:
        exists = path.exists()
    except OSError:
        exists = False

    if exists:
        target = path.resolve().as_uri()
        log.debug(f"Input detected as local file: {target}")
        return target

    if raw.startswith(("http://", "https://", "file://")):
        log.debug(f"Input treated as URL: {raw}")
        return raw

    target = f"https://{raw}"
    log.warning(f"Input does not appear to be a valid URL, treating as {target}")
    return target
