from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    RUN_STORE_DIR: str = "./runs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    OPENING_CASH_BALANCE: float = 0.0
    MONTE_CARLO_SIMULATIONS: int = 200
    MONTE_CARLO_SEED: Optional[int] = 42

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
