import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import ConfigError
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINTS_FILE = "endpoints.json"
SUPPORTED_METHODS = ("GET", "POST")


class EnvHeader(BaseModel):
    """Header value read from the named environment variable at request time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    env: str = Field(min_length=1)


class LiteralHeader(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    value: str


HeaderValue = Union[EnvHeader, LiteralHeader]


class Endpoint(BaseModel):
    """One target to poke. Read-only once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target: str = Field(alias="url", min_length=1)
    method: str
    headers: Dict[str, HeaderValue] = Field(default_factory=dict)
    name: Optional[str] = None
    params: Dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @field_validator("target")
    @classmethod
    def _target_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("url must not be blank")
        return v.strip()

    @field_validator("method", mode="before")
    @classmethod
    def _supported_method(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("method is required")
        method = v.strip().upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"unsupported HTTP method {v!r}, expected one of {', '.join(SUPPORTED_METHODS)}")
        return method

    @field_validator("headers", mode="before")
    @classmethod
    def _plain_strings_are_env_names(cls, v: Any) -> Any:
        # {"apikey": "API_KEY"} means "send $API_KEY as apikey"
        if isinstance(v, dict):
            return {k: {"env": val} if isinstance(val, str) else val for k, val in v.items()}
        return v

    @property
    def label(self) -> str:
        return self.name or self.target

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: Optional[int] = None) -> "Endpoint":
        where = f"endpoint #{index}" if index is not None else "endpoint"
        if not isinstance(data, Mapping):
            raise ConfigError(f"{where} must be a JSON object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(f"invalid {where}: {problems}") from e


def resolve_headers(endpoint: Endpoint, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Turn an endpoint's header spec into concrete values.

    Environment lookups happen here, at request time, so the descriptor
    itself never holds secrets. Unset variables give an empty value.
    """
    if environ is None:
        environ = os.environ
    resolved = {}
    for header, value in endpoint.headers.items():
        if isinstance(value, EnvHeader):
            resolved[header] = environ.get(value.env, "")
        else:
            resolved[header] = value.value
    return resolved


def load_endpoints(path: Union[str, Path, None] = None) -> Tuple[Endpoint, ...]:
    jsonfile = Path(path) if path else Path(DEFAULT_ENDPOINTS_FILE)

    try:
        raw = jsonfile.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read endpoints file {jsonfile}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"malformed JSON in {jsonfile}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"{jsonfile} must contain a JSON array of endpoints")

    try:
        endpoints = tuple(Endpoint.from_dict(item, index=i) for i, item in enumerate(data))
    except ConfigError as e:
        raise ConfigError(f"{jsonfile}: {e}") from e

    for ep in endpoints:
        logger.info("url found url=%s method=%s name=%s", ep.target, ep.method, ep.name or "-")

    return endpoints
