"""
Request context configuration.
Supports file-based (YAML/JSON) and programmatic configuration.
"""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, List, Any, Union
import json
import yaml

from .exceptions import ConfigError
from .logger import get_logger

logger = get_logger("config")


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 6.1; WOW64; rv:42.0) "
    "Gecko/20100101 Firefox/42.0)"
)
DEFAULT_TIMEOUT = 30

HeadersInput = Union[Dict[str, str], List[str]]


def validate_timeout(value: Any) -> int:
    """Return `value` if it is a usable timeout in seconds; 0 means no limit."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(
            f"Timeout must be an integer number of seconds, got {value!r}",
            config_key="timeout",
            config_value=value,
        )
    if value < 0:
        raise ConfigError(
            "Timeout must be non-negative",
            config_key="timeout",
            config_value=value,
        )
    return value


def validate_ca_cert(path: Any) -> Path:
    """Return `path` as a Path if it names an existing file."""
    if path is None or not Path(path).is_file():
        raise ConfigError(
            f"Cert {path} not found",
            config_key="ca_cert_path",
            config_value=str(path) if path is not None else None,
        )
    return Path(path)


@dataclass
class ContextConfig:
    """
    Every setting a RequestContext carries between requests.

    TLS verification is off by default. That matches the behaviour callers of
    this wrapper have always had, but it is insecure: turn it on with a CA
    bundle for anything that is not a local test endpoint.
    """
    uri: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: int = DEFAULT_TIMEOUT
    follow_redirects: bool = True
    auto_referer: bool = True
    tls_verify: bool = False
    ca_cert_path: Optional[Path] = None
    headers: HeadersInput = field(default_factory=dict)
    return_body_as_string: bool = True

    # Directory that receives the cookie jar file
    temp_dir: Optional[Path] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        validate_timeout(self.timeout)

        if self.ca_cert_path is not None:
            self.ca_cert_path = Path(self.ca_cert_path)

        if self.tls_verify:
            self.ca_cert_path = validate_ca_cert(self.ca_cert_path)

        if self.temp_dir is not None:
            self.temp_dir = Path(self.temp_dir)
            if not self.temp_dir.is_dir():
                raise ConfigError(
                    f"Temp directory not found: {self.temp_dir}",
                    config_key="temp_dir",
                    config_value=str(self.temp_dir),
                )

    @property
    def resolved_temp_dir(self) -> Path:
        """Directory for cookie files, defaulting to the platform temp dir."""
        if self.temp_dir is not None:
            return self.temp_dir
        return Path(tempfile.gettempdir())

    @classmethod
    def from_file(cls, config_path: Path) -> "ContextConfig":
        """
        Load configuration from a file (JSON or YAML).

        Args:
            config_path: Path to configuration file

        Returns:
            Populated ContextConfig instance
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                config_key="config_path",
                config_value=str(config_path),
            )

        with open(config_path, "r") as f:
            try:
                if config_path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigError(
                    f"Cannot parse configuration file: {config_path}",
                    config_key="config_path",
                    config_value=str(config_path),
                    cause=e,
                )

        logger.debug(f"Loaded configuration from {config_path}")
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextConfig":
        """
        Create configuration from a dictionary. Unknown keys are rejected.

        Args:
            data: Configuration dictionary

        Returns:
            Populated ContextConfig instance
        """
        data = dict(data)
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                config_key=unknown[0],
                config_value=data[unknown[0]],
            )

        for key in ("ca_cert_path", "temp_dir"):
            if data.get(key):
                data[key] = Path(data[key])

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "uri": self.uri,
            "user_agent": self.user_agent,
            "timeout": self.timeout,
            "follow_redirects": self.follow_redirects,
            "auto_referer": self.auto_referer,
            "tls_verify": self.tls_verify,
            "ca_cert_path": str(self.ca_cert_path) if self.ca_cert_path else None,
            "headers": self.headers if isinstance(self.headers, list) else dict(self.headers),
            "return_body_as_string": self.return_body_as_string,
            "temp_dir": str(self.temp_dir) if self.temp_dir else None,
        }
