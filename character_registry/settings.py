from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Upstream (override via env)
    UPSTREAM_URL: str = "https://rickandmortyapi.com/api/character"
    UPSTREAM_MAX_PAGES: int = 1  # first page only; follow info.next beyond that
    REQUEST_TIMEOUT: float = 10.0

    # App
    POPULATE_ON_STARTUP: bool = False

    class Config:
        env_file = ".env"

settings = Settings()
