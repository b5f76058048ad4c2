from __future__ import annotations

import base64
import os

from pydantic import BaseModel, field_validator

AUTHORITY_SCOPES = ("program", "admin")


def parse_authorities(raw: str) -> dict[str, str]:
    """Parse ``<identity_b64>:<scope>,...`` into an identity -> scope mapping."""
    authorities: dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        identity, sep, scope = item.rpartition(":")
        if not sep or not identity:
            raise ValueError(f"Malformed authority entry: {item!r}")
        authorities[identity] = scope.strip()
    return authorities


class Settings(BaseModel):
    database_url: str

    api_host: str
    api_port: int
    api_debug: bool
    api_cors_origins: list[str]

    app_name: str
    app_version: str
    log_level: str

    # identity (base64 address) -> scope
    authorities: dict[str, str]

    @field_validator("authorities")
    @classmethod
    def validate_authorities(cls, v: dict[str, str]) -> dict[str, str]:
        """Exactly one `program` and one `admin` identity, each a 32-byte address."""
        for identity, scope in v.items():
            if scope not in AUTHORITY_SCOPES:
                raise ValueError(f"Unknown authority scope {scope!r}")
            try:
                raw = base64.b64decode(identity, validate=True)
            except ValueError as e:
                raise ValueError(f"Authority identity is not base64: {identity}") from e
            if len(raw) != 32:
                raise ValueError(f"Authority identity must be 32 bytes: {identity}")
        for scope in AUTHORITY_SCOPES:
            count = sum(1 for s in v.values() if s == scope)
            if count != 1:
                raise ValueError(
                    f"Exactly one {scope!r} authority is required, got {count}"
                )
        return v

    def _identity(self, scope: str) -> bytes:
        for identity, s in self.authorities.items():
            if s == scope:
                return base64.b64decode(identity)
        raise ValueError(f"No {scope!r} authority configured")

    @property
    def program_id(self) -> bytes:
        return self._identity("program")

    @property
    def admin(self) -> bytes:
        return self._identity("admin")


def get_settings() -> Settings:
    """Return typed settings instance sourced from REDPACKET_* env vars."""
    return Settings(
        database_url=os.environ.get("REDPACKET_DATABASE_URL", "redis://localhost:6379/0"),
        api_host=os.environ.get("REDPACKET_API_HOST", "0.0.0.0"),
        api_port=int(os.environ.get("REDPACKET_API_PORT", "8000")),
        api_debug=os.environ.get("REDPACKET_API_DEBUG", "false").lower() == "true",
        api_cors_origins=os.environ.get("REDPACKET_API_CORS_ORIGINS", "*").split(","),
        app_name=os.environ.get("REDPACKET_APP_NAME", "RedPacket Ledger"),
        app_version=os.environ.get("REDPACKET_APP_VERSION", "1.0.0"),
        log_level=os.environ.get("REDPACKET_LOG_LEVEL", "INFO").upper(),
        authorities=parse_authorities(os.environ.get("REDPACKET_AUTHORITIES", "")),
    )
