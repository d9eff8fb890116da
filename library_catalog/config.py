import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "si")


@dataclass
class Settings:
    # Loan rules
    default_loan_days: int = int(os.getenv("LIBRARY_DEFAULT_LOAN_DAYS", "14"))
    max_loan_days: int = int(os.getenv("LIBRARY_MAX_LOAN_DAYS", "365"))

    # Validation thresholds
    min_isbn_length: int = int(os.getenv("LIBRARY_MIN_ISBN_LENGTH", "5"))
    min_user_id_length: int = int(os.getenv("LIBRARY_MIN_USER_ID_LENGTH", "3"))

    # CSV settings
    csv_delimiter: str = os.getenv("LIBRARY_CSV_DELIMITER", ",")
    csv_language: str = os.getenv("LIBRARY_CSV_LANGUAGE", "en")  # 'en' or 'es'
    csv_strict: bool = _env_bool("LIBRARY_CSV_STRICT", "False")
    date_format: str = os.getenv("LIBRARY_DATE_FORMAT", "%d/%m/%Y")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Catalog")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    load_samples: bool = _env_bool("LIBRARY_LOAD_SAMPLES", "True")
    # Kept above INFO by default so service logs do not interleave with the menu
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "WARNING").upper()


settings = Settings()
