import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "")
    jwt_secret: str = os.getenv("JWT_SECRET", "school_management_secret_change_in_production")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    # 7 days
    jwt_exp_minutes: int = int(os.getenv("JWT_EXP_MINUTES", "10080"))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
    seed_test_users: bool = _env_flag("SEED_TEST_USERS", "true")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: tuple = field(
        default_factory=lambda: (
            "http://localhost:3000",
            "http://localhost:5000",
            "http://localhost:5173",
            "http://127.0.0.1:5000",
        )
    )


settings = Settings()
