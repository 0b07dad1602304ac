from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/matchi.db"

    timezone: str = "Europe/Stockholm"
    log_level: str = "INFO"

    lookahead_minutes: int = 120
    lookback_minutes: int = 60
    near_end_minutes: int = 5
    near_start_minutes: int = 5

    # Claim flags with a conditional update and suppress the message when
    # another request already claimed it.
    exactly_once_messages: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
