"""Application settings and validation."""

import os


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    PASSWORD_HASH_ROUNDS: int
    EXERCISE_API_URL: str
    EXERCISE_API_HOST: str
    EXERCISE_API_KEY: str
    EXERCISE_API_TIMEOUT: float
    STRICT_EMPTY_FAVORITES: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))  # 0 disables the exp claim
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.PASSWORD_HASH_ROUNDS = int(os.getenv("PASSWORD_HASH_ROUNDS", "29000"))
        self.EXERCISE_API_URL = os.getenv("EXERCISE_API_URL", "https://exercisedb.p.rapidapi.com/exercises")
        self.EXERCISE_API_HOST = os.getenv("EXERCISE_API_HOST", "exercisedb.p.rapidapi.com")
        self.EXERCISE_API_KEY = os.getenv("EXERCISE_API_KEY", "")
        self.EXERCISE_API_TIMEOUT = float(os.getenv("EXERCISE_API_TIMEOUT", "30"))
        self.STRICT_EMPTY_FAVORITES = os.getenv("STRICT_EMPTY_FAVORITES", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.PASSWORD_HASH_ROUNDS < 1:
            raise RuntimeError("PASSWORD_HASH_ROUNDS must be a positive integer")


settings = Settings()
