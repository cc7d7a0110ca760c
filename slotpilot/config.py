"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class ServiceSettings(BaseModel):
    """Endpoints of the external services the pipeline talks to."""
    backend_url: str = "http://127.0.0.1:8000"  # Empty disables the backend tier
    compression_url: str = "https://api.scaledown.xyz/compress/raw/"
    compression_model: str = "gpt-4o"
    generation_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout_seconds: float = 30.0

    @field_validator("backend_url", "generation_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Paths are appended to these URLs."""
        return value.strip().rstrip("/")

    @field_validator("compression_url")
    @classmethod
    def validate_compression_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("compression_url must not be empty")
        return value.strip()

    @field_validator("request_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure request timeout is positive."""
        if value <= 0:
            raise ValueError("request_timeout_seconds must be greater than zero")
        return value


class GenerationSettings(BaseModel):
    """Settings for the generative model call."""
    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    max_output_tokens: int = 8192
    thinking_budget: int = 0
    require_structured_output: bool = False

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        if not 0 <= value <= 2:
            raise ValueError(f"temperature must be between 0 and 2, got {value}")
        return value

    @field_validator("max_output_tokens")
    @classmethod
    def validate_max_output_tokens(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_output_tokens must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    services: ServiceSettings = Field(default_factory=ServiceSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept any standard logging level name, case-insensitively."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.
        
        Args:
            config_path: Path to the YAML config file
            
        Returns:
            AppConfig instance
            
        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "AppConfig":
        """
        Load an explicit config file, else the default one if present.

        Falls back to built-in defaults when no default config file exists.
        """
        if config_path is not None:
            return cls.load_from_yaml(config_path)

        default_path = get_default_config_path()
        if default_path.exists():
            return cls.load_from_yaml(default_path)

        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"
    
    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"
    
    return config_path
