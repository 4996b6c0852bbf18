"""
Pydantic schemas for the Lightsail instance endpoints.

Request models enforce every configuration rule up front, so malformed input
is rejected with 422 before any Lightsail call is made.
"""

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_STARTS_ALPHA = re.compile(r"^[a-zA-Z]")
_ALLOWED_CHARS = re.compile(r"^[a-zA-Z0-9_\-.]*[a-zA-Z0-9]$")

IpAddressType = Literal["dualstack", "ipv4"]


# ── Request models ────────────────────────────────────────────────────────────

class CreateInstanceRequest(BaseModel):
    """Request body for POST /instances."""

    name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        examples=["test1"],
        description="Instance name. Immutable.",
    )
    availability_zone: str = Field(..., min_length=1, examples=["us-east-1a"])
    blueprint_id: str = Field(..., min_length=1, examples=["amazon_linux"])
    bundle_id: str = Field(..., min_length=1, examples=["nano_1_0"])
    key_pair_name: Optional[str] = Field(
        None,
        description="Existing Lightsail key pair. Lightsail's default key pair is used when omitted.",
    )
    user_data: Optional[str] = Field(
        None,
        description="Launch script. Write-only: Lightsail never returns it.",
    )
    ip_address_type: IpAddressType = "dualstack"
    tags: Optional[dict[str, str]] = Field(
        None,
        examples=[{"Environment": "test"}],
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not _STARTS_ALPHA.match(v):
            raise ValueError("must begin with an alphabetic character")
        if not _ALLOWED_CHARS.match(v):
            raise ValueError(
                "must contain only alphanumeric characters, underscores, hyphens, "
                "and dots, and must not end with one of '._-'"
            )
        return v


class UpdateInstanceRequest(BaseModel):
    """
    Request body for PATCH /instances/{name}.

    Only mutable attributes are accepted; anything else forces replacement
    and is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    ip_address_type: Optional[IpAddressType] = None
    tags: Optional[dict[str, str]] = None


# ── Response models ───────────────────────────────────────────────────────────

class InstanceResponse(BaseModel):
    """Tracked state of one Lightsail instance."""

    name: str
    availability_zone: Optional[str] = None
    blueprint_id: Optional[str] = None
    bundle_id: Optional[str] = None
    key_pair_name: Optional[str] = None
    user_data: Optional[str] = None
    ip_address_type: Optional[str] = None

    arn: Optional[str] = None
    created_at: Optional[str] = None
    cpu_count: Optional[int] = None
    ram_size: Optional[float] = None
    ipv6_address: Optional[str] = Field(None, description="Deprecated: use `ipv6_addresses` instead.")
    ipv6_addresses: list[str] = []
    is_static_ip: Optional[bool] = None
    private_ip_address: Optional[str] = None
    public_ip_address: Optional[str] = None
    username: Optional[str] = None

    tags: dict[str, str] = {}
    tags_all: dict[str, str] = {}


class InstanceListResponse(BaseModel):
    count: int
    instances: list[InstanceResponse]
