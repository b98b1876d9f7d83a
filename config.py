import os
import tempfile
from dotenv import load_dotenv

load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///" + os.path.join(basedir, "bills.sqlite")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Receipt uploads
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # Settlement: 'hub' (everyone settles with the host) or 'greedy'
    SETTLEMENT_STRATEGY = os.environ.get("SETTLEMENT_STRATEGY", "hub")
    # When False the host is assumed to cover whatever the others did not pay
    HONOR_HOST_PAID = _env_flag("HONOR_HOST_PAID")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), "easy-split-test-uploads")
    SETTLEMENT_STRATEGY = "hub"
    HONOR_HOST_PAID = False
    LOG_LEVEL = "DEBUG"
