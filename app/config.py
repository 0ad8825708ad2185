# app/config.py
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Classification ---
    CONFIDENCE_FLOOR: float = 0.5
    FUZZY_THRESHOLD: float = 0.70
    MAX_CLASSIFICATIONS: int = 5
    MISC_HS_CODE: str = "9999999999"

    # --- Tax ---
    QUOTE_CURRENCY: str = "USD"
    HIGH_TAX_RATIO: float = 0.30
    DDP_SUGGEST_TAX: float = 50.0

    # --- Logistics ---
    VOLUMETRIC_DIVISOR: float = 5000.0
    DEFAULT_ITEM_WEIGHT_KG: float = 0.5
    DEFAULT_PACKAGE_LENGTH_CM: float = 20.0
    DEFAULT_PACKAGE_WIDTH_CM: float = 15.0
    DEFAULT_PACKAGE_HEIGHT_CM: float = 10.0

    # Scoring weights (tunable; see DESIGN.md)
    WEIGHT_COST: float = 0.4
    WEIGHT_SPEED: float = 0.3
    WEIGHT_RELIABILITY: float = 0.3
    PRIORITY_BOOST: float = 2.0
    DDP_BONUS: float = 0.2

    # --- Startup tables (optional overrides) ---
    hs_table_path: Optional[str] = None
    tax_table_path: Optional[str] = None
    catalog_path: Optional[str] = None

    # --- Optional extras (lower-case to match env exactly) ---
    cors_origins: Optional[str] = None  # CSV, overrides app.core.settings.CORS_ORIGINS

    # Pydantic v2 settings
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",   # accept unknown env keys without error
    )

settings = Settings()
