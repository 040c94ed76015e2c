"""API server configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources.base import PydanticBaseSettingsSource

from authcore.auth.origin import DEFAULT_ALLOW_HEADERS, DEFAULT_ALLOW_METHODS, DEFAULT_MAX_AGE_SECONDS
from authcore.validators import StringListEnvSettingsSource, parse_string_list

_STRING_LIST_FIELDS = frozenset({"cors_origins", "cors_allow_methods", "cors_allow_headers"})


class ApiServerSettings(BaseSettings):
    model_config = {"env_prefix": "API_"}

    log_dir: str = "backend/logs/api"
    # Frontend origins allowed to call the API with cookies, e.g. "http://localhost:3000"
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = list(DEFAULT_ALLOW_METHODS)
    cors_allow_headers: list[str] = list(DEFAULT_ALLOW_HEADERS)
    cors_max_age: int = Field(default=DEFAULT_MAX_AGE_SECONDS, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @field_validator("cors_allow_methods", "cors_allow_headers", mode="before")
    @classmethod
    def validate_string_lists(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            StringListEnvSettingsSource(settings_cls, string_list_fields=_STRING_LIST_FIELDS),
            dotenv_settings,
            file_secret_settings,
        )
