"""
Config Schema Validation

Pydantic models for validating config.yaml structure.
Provides clear error messages when configuration is invalid.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class TenancyConfig(BaseModel):
    """Tenant connection cache and resolution settings"""

    connection_ttl_seconds: int = Field(
        default=300,
        ge=1,
        description="Idle seconds before a cached connection is health-checked on reuse",
    )
    connect_timeout_seconds: float = Field(
        default=30,
        gt=0,
        le=300,
        description="Upper bound on a single connection-open attempt",
    )
    retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        le=30,
        description="Delay before the single retry of a failed open",
    )
    pool_size: int = Field(default=3, ge=1, le=50, description="Pooled connections per tenant")
    base_domains: List[str] = Field(
        default_factory=list,
        description="Parent domains the application is served from",
    )
    aliases: Dict[str, str] = Field(
        default_factory=dict,
        description="Alternative names mapped to canonical tenant subdomains",
    )

    @field_validator("aliases")
    @classmethod
    def normalize_aliases(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Aliases are matched case-insensitively"""
        return {key.strip().lower(): value.strip().lower() for key, value in v.items()}

    @field_validator("base_domains")
    @classmethod
    def normalize_base_domains(cls, v: List[str]) -> List[str]:
        return [domain.strip().lower().strip(".") for domain in v if domain.strip()]


class LoggingConfig(BaseModel):
    """Logging configuration"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_to_file: bool = Field(default=True, description="Enable file logging")
    log_to_console: bool = Field(default=True, description="Enable console logging")


class ApplicationConfig(BaseModel):
    """Application settings"""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class OwnerConfig(BaseModel):
    """Owner portal bootstrap account"""

    bootstrap_username: str = Field(default="owner", min_length=1)
    bootstrap_email: str = Field(default="owner@localhost", min_length=3)
    bootstrap_password: Optional[str] = Field(
        default=None,
        description="Initial owner password (leave empty for default 'owner')",
    )


class VetCoreConfig(BaseModel):
    """
    Root configuration model for config.yaml

    Validates the entire configuration structure on load.
    """

    tenancy: TenancyConfig = Field(default_factory=TenancyConfig)
    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    owner: OwnerConfig = Field(default_factory=OwnerConfig)

    model_config = {"populate_by_name": True}


def validate_config(config_dict: dict) -> VetCoreConfig:
    """
    Validate a config dictionary against the schema.

    Raises:
        pydantic.ValidationError: If config is invalid
    """
    return VetCoreConfig.model_validate(config_dict)


def get_validation_errors(config_dict: dict) -> List[str]:
    """
    Get a list of validation errors for a config dictionary.

    Returns:
        List of error messages (empty if valid)
    """
    from pydantic import ValidationError

    try:
        validate_config(config_dict)
        return []
    except ValidationError as e:
        return [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]


class EditableTenancyConfig(BaseModel):
    """Tenancy settings editable from the owner portal"""

    connection_ttl_seconds: int = Field(ge=1)
    connect_timeout_seconds: float = Field(gt=0, le=300)
    retry_backoff_seconds: float = Field(ge=0, le=30)
    pool_size: int = Field(ge=1, le=50)
    base_domains: List[str] = Field(default_factory=list)
    aliases: Dict[str, str] = Field(default_factory=dict)


def validate_tenancy_update(config_dict: dict) -> EditableTenancyConfig:
    """
    Validate a tenancy section update from the owner portal.

    Raises:
        pydantic.ValidationError: If the update is invalid
    """
    return EditableTenancyConfig.model_validate(config_dict)
