import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-meetbot-local-development-key")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    "recording_bots",
]

# The bot process keeps no state in a database
DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Browser automation
CHROMEDRIVER_PATH = os.getenv("CHROMEDRIVER_PATH", "/usr/local/bin/chromedriver")
ENABLE_CHROME_SANDBOX = os.getenv("ENABLE_CHROME_SANDBOX", "false").lower() == "true"
BOT_WINDOW_SIZE = tuple(int(x) for x in os.getenv("BOT_WINDOW_SIZE", "1920,1080").split(","))
BOT_WEBSOCKET_PORT = int(os.getenv("BOT_WEBSOCKET_PORT", "8097"))

# Recording output
BOT_RECORDING_FILE_PATH = os.getenv("BOT_RECORDING_FILE_PATH", "/tmp/recording.wav")
BOT_AUDIO_SAMPLE_RATE = int(os.getenv("BOT_AUDIO_SAMPLE_RATE", "48000"))
BOT_DEBUG_SCREENSHOT_DIRECTORY = os.getenv("BOT_DEBUG_SCREENSHOT_DIRECTORY", "/tmp")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "selenium": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "websockets": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
