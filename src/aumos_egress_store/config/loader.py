"""Egress store configuration loader with Pydantic v2 validation.

Loads and validates an ``egress.yaml`` file into a typed
:class:`EgressStoreConfig` object.  Unknown keys are allowed to support
future schema additions without breakage.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load_string("enabled: false")
>>> config.listing_limit
100
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class AwsConfig(BaseModel):
    """Settings used when building boto3 clients.

    ``max_attempts`` applies to the S3, KMS and SNS clients.  Record table
    writes are conditional and are never retried.
    """

    model_config = {"extra": "allow"}

    region_name: str | None = Field(default=None)
    endpoint_url: str | None = Field(default=None)
    max_attempts: int = Field(default=3, ge=1)


class AuditConfig(BaseModel):
    """Configuration for the audit trail."""

    model_config = {"extra": "allow"}

    log_path: Path = Field(default=Path("./egress_audit.jsonl"))
    session_id: str | None = Field(default=None)


class EgressStoreConfig(BaseModel):
    """Top-level egress store configuration.

    ``enabled`` gates every lifecycle operation.  When it is on, both the
    store bucket and the notification bucket must be named.
    """

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    store_bucket_name: str | None = Field(default=None)
    notification_bucket_name: str | None = Field(default=None)
    kms_key_alias_arn: str | None = Field(default=None)
    notification_topic_arn: str | None = Field(default=None)
    record_table_name: str = Field(default="EgressStore")
    lock_timeout_seconds: float = Field(default=30.0, gt=0)
    listing_limit: int = Field(default=100, ge=1)
    manifest_workers: int = Field(default=8, ge=1, le=64)
    aws: AwsConfig = Field(default_factory=AwsConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    member_accounts: dict[str, str] = Field(default_factory=dict)

    @field_validator("enabled", mode="before")
    @classmethod
    def parse_enabled(cls, value: object) -> object:
        # Settings stores historically carried the flag as the string "TRUE".
        if isinstance(value, str):
            return value.strip().upper() == "TRUE"
        return value

    @field_validator("member_accounts", mode="before")
    @classmethod
    def stringify_accounts(cls, value: object) -> object:
        # YAML parses unquoted account ids as integers.
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @model_validator(mode="after")
    def require_buckets_when_enabled(self) -> "EgressStoreConfig":
        if self.enabled:
            missing = [
                name
                for name in ("store_bucket_name", "notification_bucket_name")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Egress store is enabled but {', '.join(missing)} is not set.")
        return self


class ConfigLoader:
    """Loads and validates egress store YAML configuration.

    Example
    -------
    >>> loader = ConfigLoader()
    >>> config = loader.load(Path("egress.yaml"))
    """

    def load(self, config_path: Path) -> EgressStoreConfig:
        """Load and validate an egress store YAML file.

        Parameters
        ----------
        config_path:
            Path to the ``egress.yaml`` file.

        Returns
        -------
        EgressStoreConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ValueError:
            When the YAML content fails Pydantic validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Egress store config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return EgressStoreConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> EgressStoreConfig:
        """Load and validate a YAML string directly."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return EgressStoreConfig.model_validate(raw)

    def defaults(self) -> EgressStoreConfig:
        """Return a default (disabled) configuration."""
        return EgressStoreConfig()
