from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class SiteOptions(BaseModel):
    name: str = "Easyweb"
    default_culture: str = "sv-SE"
    cultures: list[str] = ["sv-SE", "en-US"]

    # Result links for form posts
    good_post_page: str = "/tack"
    bad_post_page: str = "/fel"

    # Module name -> route prefix, e.g. {"news": "nyheter"}
    modules: dict[str, str] = Field(default_factory=dict)

    # Old path -> new path, answered with 301
    redirects: dict[str, str] = Field(default_factory=dict)
    not_found_redirect: str | None = None


class DataOptions(BaseModel):
    provider: Literal["file", "api"] = "file"
    content_file: str = "content.json"
    api_url: str = ""
    api_key: str = ""
    timeout: float = 10.0
    cache_seconds: int = 60


class SecurityOptions(BaseModel):
    use_authentication: bool = False
    secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 8
    admin_username: str = ""
    admin_password: str = ""
    validate_antiforgery: bool = True


class CaptchaOptions(BaseModel):
    provider: Literal["token", "recaptcha"] = "token"
    max_age_minutes: int = 120
    min_seconds: float = 0.0
    recaptcha_secret: str = ""
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"


class OutputCacheOptions(BaseModel):
    enabled: bool = False
    duration_seconds: int = 300


class MailOptions(BaseModel):
    enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: str = ""
    smtp_password: str = ""
    use_tls: bool = False
    sender: str = "noreply@localhost"
    recipients: list[str] = Field(default_factory=list)


class ThumbnailOptions(BaseModel):
    # "package.module:ClassName" replacing the default generator
    generator: str = ""
    cache_dir: str = "wwwroot/thumbnails"
    max_size: int = 2000
    quality: int = 85


class Settings(BaseSettings):
    environment: str = "Production"
    content_root: Path = Path(".")
    database_path: Path = Path("data/easyweb.db")
    redis_url: str = "redis://localhost:6379/0"

    site: SiteOptions = Field(default_factory=SiteOptions)
    data: DataOptions = Field(default_factory=DataOptions)
    security: SecurityOptions = Field(default_factory=SecurityOptions)
    captcha: CaptchaOptions = Field(default_factory=CaptchaOptions)
    output_cache: OutputCacheOptions = Field(default_factory=OutputCacheOptions)
    mail: MailOptions = Field(default_factory=MailOptions)
    thumbnails: ThumbnailOptions = Field(default_factory=ThumbnailOptions)

    model_config = SettingsConfigDict(
        env_prefix="EASYWEB_",
        env_nested_delimiter="__",
        env_file=".env",
        json_file="appsettings.json",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def path(self, *parts: str) -> Path:
        """Resolve a path relative to the content root."""
        return self.content_root.joinpath(*parts)

    @property
    def wwwroot(self) -> Path:
        return self.path("wwwroot")

    @property
    def views_dir(self) -> Path:
        return self.path("views")

    @property
    def resources_dir(self) -> Path:
        return self.path("resources")

    @property
    def media_dir(self) -> Path:
        return self.path("media")

    @property
    def db_path(self) -> Path:
        if self.database_path.is_absolute():
            return self.database_path
        return self.content_root / self.database_path


settings = Settings()
