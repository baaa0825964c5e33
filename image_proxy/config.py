# image_proxy/config.py

"""
Configuration model for the proxy.
Using Pydantic for type validation and clear structure.

The document has four top-level sections: `server`, `sources`, `processors`
and `routes`. The last three are maps of named profiles. Every profile other
than "default" inherits the fields it leaves out from the "default" profile
of the same section.
"""
import re
from pathlib import Path
from typing import Any, Dict, Type, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from image_proxy.errors import ConfigError

DEFAULT_PROFILE = "default"
DEFAULT_IMAGE_KEY_GROUP = "image_path"


class ProfileConfig(BaseModel):
    """Common base: a named, immutable settings record."""
    # DEV: extra="forbid" turns typos in the YAML into startup errors instead
    # of silently ignored settings.
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = DEFAULT_PROFILE


class SourceConfig(ProfileConfig):
    """Where original images are fetched from."""
    type: str = ""
    # Object storage
    s3_bucket: str = ""
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_endpoint: str = ""
    # Local filesystem
    directory: str = ""
    allow_directories: bool = False
    timeout: float = Field(30.0, gt=0)


class ProcessorConfig(ProfileConfig):
    """How fetched images are transformed. Zero means "not configured" for every limit."""
    image_compression_quality: int = Field(0, ge=0, le=100)
    maintain_aspect_ratio: bool = False
    default_image_width: int = Field(0, ge=0)
    default_image_height: int = Field(0, ge=0)
    max_image_width: int = Field(0, ge=0)
    max_image_height: int = Field(0, ge=0)
    max_blur_radius_percentage: float = Field(0.0, ge=0)
    grayscale_by_default: bool = False
    grayscale_disabled: bool = False


class RouteConfig(ProfileConfig):
    """Binds a request path pattern to a source and a processor."""
    pattern: str = ""
    image_key_group: str = DEFAULT_IMAGE_KEY_GROUP
    source: str = DEFAULT_PROFILE
    processor: str = DEFAULT_PROFILE
    cache_control: str = ""

    @model_validator(mode="after")
    def _check_pattern(self) -> "RouteConfig":
        if not self.pattern:
            return self
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise ValueError(f"pattern '{self.pattern}' is not a valid regular expression: {e}") from e
        if self.image_key_group not in compiled.groupindex:
            raise ValueError(f"pattern '{self.pattern}' has no named group '{self.image_key_group}'")
        return self


class ServerConfig(BaseModel):
    """Settings for the HTTP listener."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "0.0.0.0"
    port: int = Field(8080, ge=0, le=65535)
    keep_alive_timeout: int = Field(5, ge=0)
    thread_pool_size: int = Field(40, ge=1)
    log_level: str = "info"


class ProxyConfig(BaseModel):
    """The fully resolved configuration document."""
    model_config = ConfigDict(frozen=True)

    server: ServerConfig = ServerConfig()
    sources: Dict[str, SourceConfig] = {}
    processors: Dict[str, ProcessorConfig] = {}
    routes: Dict[str, RouteConfig] = {}

    def served_routes(self) -> list[RouteConfig]:
        """Routes in configuration order, skipping a pattern-less "default" template."""
        return [route for route in self.routes.values() if route.pattern]


P = TypeVar("P", bound=ProfileConfig)


def _build_profile(model: Type[P], name: str, raw: Dict[str, Any]) -> P:
    try:
        return model(**{**raw, "name": name})
    except ValidationError as e:
        raise ConfigError(f"Invalid {model.__name__} '{name}': {e}") from e


def load_profiles(section: Dict[str, Any] | None, model: Type[P]) -> Dict[str, P]:
    """
    Resolves one section of named profiles.

    Args:
        section: The raw mapping of profile name to settings from the document.
        model: The profile class to build.

    Returns:
        The resolved profiles, in document order. Fields a profile leaves out
        are taken from the resolved "default" profile, which itself falls back
        only to the model's zero values.
    """
    section = section or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Expected a mapping of {model.__name__} profiles, got {type(section).__name__}")

    for name, raw in section.items():
        if raw is not None and not isinstance(raw, dict):
            raise ConfigError(f"{model.__name__} '{name}' must be a mapping, got {type(raw).__name__}")

    default = _build_profile(model, DEFAULT_PROFILE, section.get(DEFAULT_PROFILE) or {})
    inherited = default.model_dump(exclude={"name"})

    profiles: Dict[str, P] = {}
    for name, raw in section.items():
        name = str(name)
        if name == DEFAULT_PROFILE:
            profiles[name] = default
        else:
            # Single-level merge: explicit fields win, everything else comes from "default".
            profiles[name] = _build_profile(model, name, {**inherited, **(raw or {})})
    return profiles


def parse_config(document: Dict[str, Any]) -> ProxyConfig:
    """Builds and cross-checks a ProxyConfig from an already parsed document."""
    if not isinstance(document, dict):
        raise ConfigError("Configuration document must be a mapping at the top level.")

    try:
        server = ServerConfig(**(document.get("server") or {}))
    except (TypeError, ValidationError) as e:
        raise ConfigError(f"Invalid server section: {e}") from e

    sources = load_profiles(document.get("sources"), SourceConfig)
    processors = load_profiles(document.get("processors"), ProcessorConfig)
    routes = load_profiles(document.get("routes"), RouteConfig)

    for route in routes.values():
        if not route.pattern:
            if route.name == DEFAULT_PROFILE:
                continue
            raise ConfigError(f"Route '{route.name}' has no pattern.")
        if route.source not in sources:
            raise ConfigError(f"Route '{route.name}' references undefined source '{route.source}'.")
        if route.processor not in processors:
            raise ConfigError(f"Route '{route.name}' references undefined processor '{route.processor}'.")

    config = ProxyConfig(server=server, sources=sources, processors=processors, routes=routes)
    if not config.served_routes():
        raise ConfigError("Configuration defines no routes.")
    return config


def load_config(path: Path) -> ProxyConfig:
    """Reads the YAML configuration file and resolves it."""
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {path}")

    # Load the YAML configuration with UTF-8 encoding for safety
    with open(path, 'r', encoding='utf-8') as f:
        try:
            document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML file: {e}") from e

    return parse_config(document)
