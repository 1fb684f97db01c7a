"""Database configuration for Tortoise-ORM."""

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://db.sqlite3")

MODELS_MODULE = "coopbill.core.models"

TORTOISE_ORM = {
    "connections": {"default": DATABASE_URL},
    "apps": {
        "models": {
            "models": [MODELS_MODULE, "aerich.models"],
            "default_connection": "default",
        },
    },
}
