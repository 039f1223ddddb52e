from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    backend_mode: str = 'local'
    backend_url: str | None = None
    backend_timeout_seconds: int = 30

    database_url: str = 'sqlite:///./ordering.db'

    session_cookie_name: str = 'ordering_session'
    session_ttl_minutes: int = 120
    session_cookie_secure: bool = False
    session_cookie_samesite: str = 'lax'

    guest_customer_id: int = -1
    currency_label: str = 'Bs.'
    log_level: str = 'INFO'

    @property
    def database_url_normalized(self) -> str:
        url = self.database_url.strip()
        if url.startswith('postgres://'):
            return 'postgresql+psycopg://' + url[len('postgres://') :]
        if url.startswith('postgresql://'):
            return 'postgresql+psycopg://' + url[len('postgresql://') :]
        return url


settings = Settings()
