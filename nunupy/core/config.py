"""
Client configuration.

Config holds the credentials and endpoint for one invocation. FileConfig
loads the same values from a JSON file so they do not have to be passed
on every command line.
"""
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, List, Union

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger('nunupy.config')

DEFAULT_API_URL = "https://nunu.ai/api"

PROJECT_CONFIG_PATHS = (
    Path("nunu.json"),
    Path(".nunu") / "config.json",
    Path("config.json"),
    Path(".config.json"),
)


def user_config_path() -> Path:
    """~/.config/nunu/config.json"""
    return Path.home() / ".config" / "nunu" / "config.json"


@dataclass(frozen=True)
class Config:
    """
    Credentials and endpoint for the builds API.

    Attributes:
        token: API token sent as x-api-key
        project_id: Project the builds belong to
        api_url: API base URL
    """
    token: str
    project_id: str
    api_url: str = DEFAULT_API_URL

    def __post_init__(self):
        if not self.token:
            raise ConfigError("API token cannot be empty")
        if not self.project_id:
            raise ConfigError("Project ID cannot be empty")
        if not self.api_url:
            raise ConfigError("API URL cannot be empty")

    @property
    def base_upload_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/nexus/projects/{self.project_id}/builds"

    def __repr__(self) -> str:
        return f"Config(token='***', project_id={self.project_id!r}, api_url={self.api_url!r})"


@dataclass(frozen=True)
class FileConfig:
    """Configuration loaded from a JSON file. Every field is optional."""
    api_token: Optional[str] = None
    project_id: Optional[str] = None
    api_url: Optional[str] = None

    @classmethod
    def load_from_path(cls, path: Union[str, Path]) -> 'FileConfig':
        """
        Load config from a specific path.

        Raises:
            ConfigError: If the file cannot be read or is not a JSON object
        """
        path = Path(path)
        logger.debug(f"Loading config from: {path}")
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot load config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        values = {}
        for key in ('api_token', 'project_id', 'api_url'):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"Config file {path}: '{key}' must be a string")
            values[key] = value
        return cls(**values)

    @classmethod
    def load_with_fallback(
        cls,
        explicit_path: Optional[Union[str, Path]] = None,
        search_paths: Optional[List[Path]] = None
    ) -> 'FileConfig':
        """
        Load config with fallback priority:
        1. Explicit path (if provided, must succeed)
        2. Project directory (./nunu.json, ./.nunu/config.json, ...)
        3. User config directory (~/.config/nunu/config.json)

        Returns an empty config when nothing is found.
        """
        if explicit_path is not None:
            return cls.load_from_path(explicit_path)

        candidates = list(search_paths) if search_paths is not None else [
            *PROJECT_CONFIG_PATHS, user_config_path()
        ]
        for path in candidates:
            if not path.is_file():
                continue
            try:
                config = cls.load_from_path(path)
            except ConfigError as e:
                logger.debug(f"Failed to load config from {path}: {e}")
                continue
            logger.debug(f"Loaded config from {path}")
            return config

        logger.debug("No config file found, using defaults")
        return cls()

    def merge_with(self, other: 'FileConfig') -> 'FileConfig':
        """Merge with another config, preferring values from self."""
        mine = asdict(self)
        theirs = asdict(other)
        return FileConfig(**{
            key: mine[key] if mine[key] is not None else theirs[key]
            for key in mine
        })


def resolve_config(
    token: Optional[str] = None,
    project_id: Optional[str] = None,
    api_url: Optional[str] = None,
    config_path: Optional[Union[str, Path]] = None,
    file_config: Optional[FileConfig] = None
) -> Config:
    """
    Build a Config from explicit values, falling back to the config file.

    Explicit values (command line or environment) win over the file, which
    wins over the default API URL.
    """
    explicit = FileConfig(api_token=token, project_id=project_id, api_url=api_url)
    loaded = file_config if file_config is not None else FileConfig.load_with_fallback(config_path)
    merged = explicit.merge_with(loaded)

    if not merged.api_token:
        raise ConfigError(
            "API token is required (--token, NUNU_API_TOKEN or api_token in config file)"
        )
    if not merged.project_id:
        raise ConfigError(
            "Project ID is required (--project-id, NUNU_PROJECT_ID or project_id in config file)"
        )
    return Config(
        token=merged.api_token,
        project_id=merged.project_id,
        api_url=merged.api_url or DEFAULT_API_URL
    )
