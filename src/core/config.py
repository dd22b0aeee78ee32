from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL
from pathlib import Path
from secrets import token_hex

ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ROOT / ".env", env_file_encoding='utf-8', extra="ignore")

    site_name: str = "Event Hub"

    # sessions (JWTs)
    jwt_secret_key: SecretStr | str | None = token_hex(16)
    jwt_algorithm: str = "HS256"
    # 30 days, same as a long-lived browser session
    jwt_access_token_expire_minutes: int = 60 * 24 * 30
    session_cookie_name: str = "session-token"

    db_url: str | URL | None = None

    # mail collaborator
    mail_api_url: str | None = None
    mail_timeout_seconds: float = 10.0
    contact_email: str = "contact@example.com"

    log_level: str = "INFO"
    json_logs: bool = False


def get_settings() -> Settings:
    return Settings()


if __name__ == "__main__":
    settings = get_settings()
    print(settings.model_dump())
