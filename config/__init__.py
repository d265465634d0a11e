import importlib
import os
from types import ModuleType

SETTINGS_MODULES = {
    "prod": "config.production",
    "production": "config.production",
    "test": "config.testing",
    "testing": "config.testing",
}


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unrecognised means development.
    env = os.getenv("APP_ENV", "development").strip().lower()
    return SETTINGS_MODULES.get(env, "config.development")


def load_settings() -> ModuleType:
    """Import the settings module for the current APP_ENV.

    Settings read the environment at import time, so call this after
    ``load_dotenv``.
    """

    return importlib.import_module(get_settings_module())
