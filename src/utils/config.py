import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() not in ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration, read from environment variables.
    """

    db_path: str = "data/storefront.sqlite"
    export_dir: str = "exports"
    country_code: str = "+91"
    brand: str = "Arya & Co"
    currency: str = "₹"
    otp_ttl_min: int = 5
    location: Optional[str] = None  # "lat,lng;address"
    log_file: Optional[str] = None
    seed: bool = True
    debug: bool = False


def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv("STOREFRONT_DB_PATH", Settings.db_path),
        export_dir=os.getenv("STOREFRONT_EXPORT_DIR", Settings.export_dir),
        country_code=os.getenv("STOREFRONT_COUNTRY_CODE", Settings.country_code),
        brand=os.getenv("STOREFRONT_BRAND", Settings.brand),
        currency=os.getenv("STOREFRONT_CURRENCY", Settings.currency),
        otp_ttl_min=int(os.getenv("STOREFRONT_OTP_TTL_MIN", Settings.otp_ttl_min)),
        location=os.getenv("STOREFRONT_LOCATION") or None,
        log_file=os.getenv("STOREFRONT_LOG_FILE") or None,
        seed=_env_flag("STOREFRONT_SEED", True),
        debug=_env_flag("DEBUG", False),
    )


settings = load_settings()
