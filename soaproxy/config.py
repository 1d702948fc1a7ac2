"""
Configuration system for soaproxy

Provides configuration management with support for files and environment variables.
Includes validation, default value handling, and configuration merging.
"""

import os
import json
import yaml
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _env_list(name: str) -> Optional[List[str]]:
    value = os.getenv(name)
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes", "on")


class ConfigurationManager:
    """Manages configuration loading, validation, and merging."""

    DEFAULT_CONFIG_PATHS = [
        "soaproxy.yaml",
        "soaproxy.yml",
        "soaproxy.json",
        ".soaproxy.yaml",
        ".soaproxy.yml",
        ".soaproxy.json",
        os.path.expanduser("~/.soaproxy.yaml"),
        os.path.expanduser("~/.soaproxy.json"),
    ]

    @staticmethod
    def find_config_file(search_paths: Optional[List[str]] = None) -> Optional[str]:
        """Find the first existing configuration file."""
        paths = search_paths or ConfigurationManager.DEFAULT_CONFIG_PATHS

        for path in paths:
            if os.path.exists(path):
                return path
        return None

    @staticmethod
    def load_config_file(config_path: str) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")
        return data

    @staticmethod
    def load_env_config() -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Parse settings
        parse: Dict[str, Any] = {}
        clang_args = os.getenv("SOAPROXY_CLANG_ARGS")
        if clang_args:
            parse["clang_args"] = clang_args.split()

        include_paths = _env_list("SOAPROXY_INCLUDE_PATHS")
        if include_paths is not None:
            parse["include_paths"] = include_paths

        if os.getenv("SOAPROXY_LIBCLANG"):
            parse["library_file"] = os.getenv("SOAPROXY_LIBCLANG")

        if parse:
            config["parse"] = parse

        # Discovery settings
        containers = _env_list("SOAPROXY_CONTAINERS")
        if containers is not None:
            config["discovery"] = {"containers": containers}

        # Generation settings
        if os.getenv("SOAPROXY_INDENT_WIDTH"):
            try:
                config["generation"] = {"indent_width": int(os.getenv("SOAPROXY_INDENT_WIDTH"))}
            except ValueError:
                logger.warning("Invalid SOAPROXY_INDENT_WIDTH value, using default")

        # Output settings
        output: Dict[str, Any] = {}
        if os.getenv("SOAPROXY_OUTPUT_DIR"):
            output["output_dir"] = os.getenv("SOAPROXY_OUTPUT_DIR")

        backup_enabled = _env_bool("SOAPROXY_BACKUP_ENABLED")
        if backup_enabled is not None:
            output["backup_enabled"] = backup_enabled

        if output:
            config["output"] = output

        return config

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Merge multiple configuration dictionaries, with later ones taking precedence."""
        result: Dict[str, Any] = {}

        for config in configs:
            if not config:
                continue

            for key, value in config.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = ConfigurationManager.merge_configs(result[key], value)
                else:
                    result[key] = value

        return result

    @staticmethod
    def validate_config(config_data: Dict[str, Any]) -> None:
        """Validate configuration data."""
        for section in ("parse", "discovery", "generation", "output"):
            if section in config_data and not isinstance(config_data[section], dict):
                raise ConfigurationError(f"{section} must be a mapping")

        if "parse" in config_data:
            parse = config_data["parse"]
            for key in ("clang_args", "include_paths"):
                if key in parse and not (
                    isinstance(parse[key], list) and all(isinstance(v, str) for v in parse[key])
                ):
                    raise ConfigurationError(f"parse.{key} must be a list of strings")

        if "discovery" in config_data:
            containers = config_data["discovery"].get("containers")
            if containers is not None:
                if not isinstance(containers, list) or not containers:
                    raise ConfigurationError("discovery.containers must be a non-empty list")
                for container in containers:
                    if not isinstance(container, str) or not container.strip():
                        raise ConfigurationError("discovery.containers entries must be names")

        if "generation" in config_data:
            generation = config_data["generation"]

            if "indent_width" in generation:
                width = generation["indent_width"]
                if not isinstance(width, int) or width <= 0:
                    raise ConfigurationError("indent_width must be positive")

            for key in ("proxy_suffix", "internal_namespace", "size_type", "nonconst_prefix"):
                if key in generation and not str(generation[key]).strip():
                    raise ConfigurationError(f"generation.{key} must not be empty")

            if "header_extension" in generation and not str(
                generation["header_extension"]
            ).startswith("."):
                raise ConfigurationError("header_extension must start with '.'")


@dataclass
class ParseConfig:
    """Configuration for parsing translation units with libclang."""

    clang_args: List[str] = field(default_factory=lambda: ["-x", "c++", "-std=c++14"])
    include_paths: List[str] = field(default_factory=list)
    library_file: Optional[str] = None

    def compiler_arguments(self) -> List[str]:
        return list(self.clang_args) + [f"-I{path}" for path in self.include_paths]


@dataclass
class DiscoveryConfig:
    """Configuration for finding container element types."""

    containers: List[str] = field(default_factory=lambda: ["std::vector"])


@dataclass
class GenerationConfig:
    """Configuration for the generated code."""

    proxy_suffix: str = "_proxy"
    internal_namespace: str = "proxy_internal"
    header_prefix: str = "autogen_"
    header_extension: str = ".hpp"
    size_type: str = "size_t"
    nonconst_prefix: str = "nonconst_"
    indent_width: int = 4

    def proxy_name(self, class_name: str) -> str:
        return f"{class_name}{self.proxy_suffix}"

    def header_name(self, class_name: str) -> str:
        return f"{self.header_prefix}{self.proxy_name(class_name)}{self.header_extension}"


@dataclass
class OutputConfig:
    """Configuration for writing results."""

    output_dir: Optional[str] = None
    backup_enabled: bool = True


@dataclass
class SoaProxyConfig:
    """Main configuration class for soaproxy."""

    parse_settings: ParseConfig = field(default_factory=ParseConfig)
    discovery_settings: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    generation_settings: GenerationConfig = field(default_factory=GenerationConfig)
    output_settings: OutputConfig = field(default_factory=OutputConfig)

    SECTIONS = {
        "parse": ("parse_settings", ParseConfig),
        "discovery": ("discovery_settings", DiscoveryConfig),
        "generation": ("generation_settings", GenerationConfig),
        "output": ("output_settings", OutputConfig),
    }

    @classmethod
    def default(cls) -> "SoaProxyConfig":
        """Create default configuration."""
        return cls()

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any], validate: bool = True) -> "SoaProxyConfig":
        if validate:
            ConfigurationManager.validate_config(config_data)

        sections = {}
        for section, (attribute, section_cls) in cls.SECTIONS.items():
            section_config = section_cls()
            for key, value in (config_data.get(section) or {}).items():
                if hasattr(section_config, key):
                    setattr(section_config, key, value)
                else:
                    logger.warning("Unknown configuration key %s.%s ignored", section, key)
            sections[attribute] = section_config
        return cls(**sections)

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        use_env: bool = True,
        validate: bool = True,
    ) -> "SoaProxyConfig":
        """
        Load configuration from multiple sources with precedence:
        1. Default values
        2. Configuration file
        3. Environment variables (if use_env=True)

        Args:
            config_path: Path to configuration file. If None, searches for default files.
            use_env: Whether to load environment variables
            validate: Whether to validate the configuration
        """
        configs_to_merge = []

        file_config: Dict[str, Any] = {}
        if config_path:
            file_config = ConfigurationManager.load_config_file(config_path)
        else:
            found_config = ConfigurationManager.find_config_file()
            if found_config:
                file_config = ConfigurationManager.load_config_file(found_config)
                logger.info(f"Loaded configuration from: {found_config}")

        configs_to_merge.append(file_config)

        if use_env:
            configs_to_merge.append(ConfigurationManager.load_env_config())

        merged_config = ConfigurationManager.merge_configs(*configs_to_merge)
        return cls.from_dict(merged_config, validate=validate)

    @classmethod
    def from_file(cls, config_path: str) -> "SoaProxyConfig":
        """Load configuration from a JSON or YAML file."""
        return cls.load(config_path=config_path, use_env=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            section: asdict(getattr(self, attribute))
            for section, (attribute, _) in self.SECTIONS.items()
        }

    def to_file(self, config_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config_path: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        config_data = self.to_dict()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                if format.lower() == "yaml":
                    yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
                else:
                    json.dump(config_data, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration file: {e}")

    def validate(self) -> None:
        """Validate the current configuration."""
        ConfigurationManager.validate_config(self.to_dict())

    def get_config_summary(self) -> str:
        """Get a human-readable summary of the configuration."""
        parse = self.parse_settings
        generation = self.generation_settings
        return f"""soaproxy Configuration Summary:
Parse:
  - Clang arguments: {' '.join(parse.clang_args)}
  - Include paths: {len(parse.include_paths)} paths
  - libclang: {parse.library_file or 'default'}

Discovery:
  - Containers: {', '.join(self.discovery_settings.containers)}

Generation:
  - Proxy name: <Name>{generation.proxy_suffix}
  - Internal namespace: {generation.internal_namespace}
  - Header name: {generation.header_name('<Name>')}
  - Size type: {generation.size_type}
  - Indent width: {generation.indent_width}

Output:
  - Output directory: {self.output_settings.output_dir or 'next to the input'}
  - Backup enabled: {self.output_settings.backup_enabled}
"""


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> SoaProxyConfig:
    """
    Load configuration from file and/or environment variables.

    Args:
        config_path: Path to configuration file
        use_env: Whether to load environment variables

    Returns:
        SoaProxyConfig: Loaded configuration
    """
    return SoaProxyConfig.load(config_path=config_path, use_env=use_env)
