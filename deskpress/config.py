import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
_env_file = Path(__file__).parent.parent / ".env"
load_dotenv(_env_file)

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

_config_path_override: Path | None = None


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def set_config_path(path: Path | str | None) -> None:
    """Override the config file location (used by the CLI ``-f`` option)."""
    global _config_path_override
    _config_path_override = Path(path) if path is not None else None


def get_config_path() -> Path:
    """Resolve the active config file.

    ``DESKPRESS_ENV=staging`` selects ``app.staging.yaml``; without it the
    plain ``app.yaml`` in the working directory is used.
    """
    if _config_path_override is not None:
        return _config_path_override

    env = os.environ.get("DESKPRESS_ENV", "").strip()
    if env and env != "production":
        return Path.cwd() / f"app.{env}.yaml"
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse the app config with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"{config_path.name} not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./deskpress.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = True
    echo: bool = False


class SessionConfig(BaseModel):
    """Cookie session configuration."""

    max_age: int = 60 * 60 * 24 * 7
    cookie_domain: str | None = None


class OAuthProviderConfig(BaseModel):
    """OAuth provider configuration."""

    client_id: str
    client_secret: str
    scopes: list[str] = ["openid", "email", "profile"]


class AuthConfig(BaseModel):
    """Authentication configuration."""

    redirect_base_url: str = "http://localhost:8000"
    providers: dict[str, OAuthProviderConfig] = {}
    device_client_id: str | None = None

    def get_redirect_uri(self, provider: str) -> str:
        """Get the OAuth callback URL for a provider."""
        return f"{self.redirect_base_url}/auth/{provider}/callback"


class GitHubConfig(BaseModel):
    """Repository holding the markdown posts and the site build workflow."""

    owner: str = ""
    repo: str = ""
    posts_path: str = "public/posts"
    branch: str = "main"
    token: str = ""
    api_url: str = "https://api.github.com"

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.owner and self.repo)


class FunctionsConfig(BaseModel):
    """Privileged remote functions (user listing, build status, rebuild)."""

    base_url: str = ""
    timeout: float = 15.0


class ContentConfig(BaseModel):
    static_limit: int = 50
    static_batch_size: int = 5


class InviteConfig(BaseModel):
    default_expiry_days: int = 7
    origin: str = "http://localhost:8000"


class BuildConfig(BaseModel):
    poll_interval: float = 10.0


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    debug: bool = False
    secret_key: str

    db: DatabaseConfig = DatabaseConfig()
    session: SessionConfig = SessionConfig()
    auth: AuthConfig = AuthConfig()
    github: GitHubConfig = GitHubConfig()
    functions: FunctionsConfig = FunctionsConfig()
    content: ContentConfig = ContentConfig()
    invites: InviteConfig = InviteConfig()
    build: BuildConfig = BuildConfig()
    logging: LoggingConfig = LoggingConfig()


_SECTIONS: dict[str, type[BaseModel]] = {
    "db": DatabaseConfig,
    "session": SessionConfig,
    "auth": AuthConfig,
    "github": GitHubConfig,
    "functions": FunctionsConfig,
    "content": ContentConfig,
    "invites": InviteConfig,
    "build": BuildConfig,
    "logging": LoggingConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and the app config file."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}
    for key, model in _SECTIONS.items():
        if key in app_config:
            updates[key] = model(**app_config[key])

    if "debug" in app_config:
        updates["debug"] = bool(app_config["debug"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings


def clear_settings_cache() -> None:
    get_settings.cache_clear()
