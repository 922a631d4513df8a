"""
Settings for the lab report service, read from environment variables.
"""
import os

MAX_HISTORY_LIMIT = 50


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        # Database
        self.database = os.getenv("LAB_REPORT_DATABASE", "reports.db")
        self.history_limit = min(int(os.getenv("HISTORY_LIMIT", str(MAX_HISTORY_LIMIT))), MAX_HISTORY_LIMIT)

        # OCR
        self.tesseract_cmd = os.getenv("TESSERACT_CMD") or None
        self.ocr_language = os.getenv("OCR_LANGUAGE", "eng")
        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.trace_extraction = _env_bool("TRACE_EXTRACTION")


# Singleton instance
_settings = None


def get_settings():
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
