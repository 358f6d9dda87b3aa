import os
BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "change-this-secret")
    # JSON stores live here, one file per storage key
    DATA_DIR = os.environ.get("APPROVALS_DATA_DIR", os.path.join(BASE_DIR, "data"))
    SEED_SAMPLE_DATA = _env_flag("APPROVALS_SEED", True)
    LOG_LEVEL = os.environ.get("APPROVALS_LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SEED_SAMPLE_DATA = False
    LOG_LEVEL = "DEBUG"
