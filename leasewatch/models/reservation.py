from string import Template
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator

from leasewatch.models.dhcp import MAC_PATTERN
from leasewatch.normalizer.mac import canonical_mac


def _check_link_template(v: Optional[str]) -> Optional[str]:
    if not v:
        return None
    if not Template(v).is_valid():
        raise ValueError(f"invalid link template: {v!r}")
    return v


class Reservation(BaseModel):
    """Статическая привязка MAC -> IP из конфигурации."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    mac: str = Field(..., pattern=MAC_PATTERN)
    ip: IPvAnyAddress
    link: Optional[str] = None  # шаблон вида "http://${ip}:8080"

    @field_validator("mac", mode="before")
    @classmethod
    def normalize_mac(cls, v: str) -> str:
        return canonical_mac(v)

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_link_template(v)


class FriendlyName(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    mac: str = Field(..., pattern=MAC_PATTERN)
    link: Optional[str] = None

    @field_validator("mac", mode="before")
    @classmethod
    def normalize_mac(cls, v: str) -> str:
        return canonical_mac(v)

    @field_validator("link")
    @classmethod
    def validate_link(cls, v: Optional[str]) -> Optional[str]:
        return _check_link_template(v)
