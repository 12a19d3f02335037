from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://brix:brix@db:5432/brix"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://b3.app,https://api.b3.app"
    CORS_ORIGINS: str = "*"

    # --- Behavior scoring ---
    SCORING_WINDOW_DAYS: int = 28
    CONSISTENCY_HALF_LIFE_DAYS: float = 7.0
    ENERGY_HALF_LIFE_DAYS: float = 3.0
    DEFAULT_GOAL_DAYS_PER_WEEK: int = 7
    MOMENTUM_EPSILON: float = 0.1
    FATIGUE_LOOKBACK_DAYS: int = 3
    FATIGUE_WEIGHT_FREQUENCY: float = 0.4
    FATIGUE_WEIGHT_STRESS: float = 0.3
    FATIGUE_WEIGHT_LOW_ENERGY: float = 0.3

    # --- Tone selection ---
    CONSISTENCY_HIGH: float = 0.7
    CONSISTENCY_LOW: float = 0.4
    FATIGUE_HIGH: float = 0.75
    CHALLENGE_STREAK_DAYS: int = 7
    STREAK_BREAK_MIN_DAYS: int = 3
    STREAK_CELEBRATION_DAYS: list[int] = [7, 30, 100, 365]
    TONE_MIN_DWELL_HOURS: int = 24

    # --- Messages ---
    MESSAGE_DAILY_CAP: int = 1
    LOW_ENERGY_LEVEL: int = 2
    # Recovery day: energy <= LOW_ENERGY_LEVEL and stress >= HIGH_STRESS_LEVEL.
    HIGH_STRESS_LEVEL: int = 4

    # --- Brick ledger ---
    # Whether a brick written for a past day may change the streak counted from today.
    BACKFILL_UPDATES_CURRENT_STREAK: bool = False
    REST_PRESERVES_STREAK: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
