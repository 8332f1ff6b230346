import os


class Settings:
    def __init__(self):
        self.app_name = "Tutoring Booking"
        self.api_version = "1.0.0"
        self.environment = os.getenv("APP_ENV", "development")
        self.secret_key = os.getenv("SECRET_KEY", "CHANGE_ME")
        self.SECRET_KEY = self.secret_key
        self.access_token_expire_minutes = 30
        self.ACCESS_TOKEN_EXPIRE_MINUTES = self.access_token_expire_minutes
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./tutoring.db")

        # Booking rules. The grid step and the pricing duration step are
        # independent knobs even though both default to 30 minutes.
        self.booking_cutoff_days = 2
        self.availability_grid_step_minutes = 30
        self.duration_step_minutes = 30
        self.discount_step_percent = 10

        self.leaderboard_default_page_size = 20


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
