import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///paperflow.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Distribution window = one calendar day in this timezone,
    # starting at RETRIEVAL_WINDOW_START_HOUR
    PAPERFLOW_TIMEZONE = os.environ.get("PAPERFLOW_TIMEZONE", "Asia/Kolkata")
    RETRIEVAL_WINDOW_START_HOUR = int(os.environ.get("RETRIEVAL_WINDOW_START_HOUR", 0))

    # Object store
    OBJECT_STORE_ROOT = os.environ.get("OBJECT_STORE_ROOT", "storage")
    OBJECT_STORE_PUBLIC_URL = os.environ.get("OBJECT_STORE_PUBLIC_URL", "/files")
    SIGNED_URL_TTL = int(os.environ.get("SIGNED_URL_TTL", 300))

    # Paper slots shown per subject on the distribution board
    PAPER_SLOTS = int(os.environ.get("PAPER_SLOTS", 5))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"
