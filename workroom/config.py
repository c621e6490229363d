from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./workroom.db"
    COMPANY_NAME: str = "Workroom Pricing"

    # Stored with every result; bump when a formula changes
    ALGORITHM_VERSION: str = "1.0.0"

    # Markup: account default applies when neither item nor category sets one
    MARKUP_DEFAULT_PCT: float = 35.0
    MARGIN_LOW_THRESHOLD_PCT: float = 20.0
    MARGIN_HIGH_THRESHOLD_PCT: float = 40.0

    # Labor: rates are per linear unit / square unit of the caller's unit
    LABOR_RATE_DEFAULT: float = 45.00
    LABOR_HOURS_PER_AREA: float = 0.5
    LABOR_HOURS_PER_PERIMETER: float = 0.1
    LABOR_MIN_HOURS: float = 0.5
    LABOR_COMPLEXITY_MULTIPLIERS: dict = {
        "simple": 1.0,
        "moderate": 1.25,
        "complex": 1.6,
    }

    # Used when a fabric has no usable width of its own (caller's unit)
    WIDE_FABRIC_WIDTH: float = 280.0
    NARROW_FABRIC_WIDTH: float = 140.0

    # Views that go stale when an item under a parent is saved
    DEPENDENT_VIEWS: list = ["quote", "report"]

    class Config:
        env_file = ".env"


settings = Settings()
