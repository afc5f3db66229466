from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./progression.db"
    log_level: str = "INFO"
    log_dir: str = "logs"
    # Comma-separated list; player messages from any other origin are ignored.
    trusted_player_origins: str = "https://drive.google.com"
    poll_interval_seconds: float = 0.5

    def trusted_origins(self) -> list[str]:
        return [o.strip() for o in self.trusted_player_origins.split(",") if o.strip()]


settings = Settings()


def _connect_args(url: str) -> dict:
    # SQLite connections are used from the threadpool FastAPI runs sync work on.
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def create_db(bind: Optional[object] = None):
    # Import models so they register on Base.metadata.
    import api.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    print("Database created")
