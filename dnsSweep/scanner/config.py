"""Configuration loader for a network scan."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import dns.exception
import dns.rdatatype
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_TIMEOUT_SECONDS = 5
DEFAULT_CONCURRENCY = 20


def split_domains(value: Any) -> List[str]:
    """Accept "a.com,b.com" or a list; strip entries and drop blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(item).strip() for item in value if str(item).strip()]


class ScanConfiguration(BaseModel):
    """Read-only settings shared by every worker for the duration of a scan."""
    primary_domain: str = Field(min_length=1)
    network: str = Field(min_length=1)
    additional_domains: List[str] = Field(default_factory=list)
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    concurrency_limit: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    resolver_port: Literal[53] = 53
    qtype: str = Field(default="A")
    db_path: str = Field(default="dns.db")
    dictionary_path: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("primary_domain", "network")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("additional_domains", mode="before")
    @classmethod
    def _split_domains(cls, value: Any) -> List[str]:
        return split_domains(value)

    @field_validator("qtype")
    @classmethod
    def _known_qtype(cls, value: str) -> str:
        value = value.strip().upper()
        try:
            dns.rdatatype.from_text(value)
        except dns.exception.DNSException as exc:
            raise ValueError(f"unknown record type {value!r}") from exc
        return value

    @property
    def domains(self) -> List[str]:
        """Primary domain followed by the additional domains, in query order."""
        return [self.primary_domain, *self.additional_domains]

    @classmethod
    def build(cls, **values: Any) -> "ScanConfiguration":
        """Validate keyword settings, dropping the ones left unset (None)."""
        try:
            return cls(**{k: v for k, v in values.items() if v is not None})
        except ValidationError as exc:
            raise ValueError(f"Invalid scan config: {exc}") from exc

    @classmethod
    def load(cls, path: str, overrides: Optional[Dict[str, Any]] = None) -> "ScanConfiguration":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Scan config not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid scan config: {cfg_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid scan config: {cfg_path} must contain a mapping")
        raw.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls.build(**raw)
