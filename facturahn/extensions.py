"""
Database connection, the application's store and its business clock.

The store is created inside ``create_app`` and kept on
``app.extensions`` so views and services receive it explicitly.
"""

from datetime import datetime

import mongoengine
from flask import current_app

from facturahn.store import MongoStore
from facturahn.utils.helpers import local_now

STORE_KEY = "facturahn.store"


def init_db(app) -> MongoStore:
    """Connect MongoEngine to the MongoDB instance configured in the app."""
    mongodb_uri = app.config.get(
        "MONGODB_URI", "mongodb://localhost:27017/facturahn"
    )
    options = {}
    if app.config.get("MONGO_CLIENT_CLASS") is not None:
        options["mongo_client_class"] = app.config["MONGO_CLIENT_CLASS"]
    mongoengine.connect(host=mongodb_uri, **options)

    store = MongoStore()
    if app.config.get("ENSURE_INDEXES"):
        store.ensure_indexes()
    app.extensions[STORE_KEY] = store
    return store


def get_store() -> MongoStore:
    return current_app.extensions[STORE_KEY]


def business_now() -> datetime:
    """Current time on the clock configured by ``TIMEZONE``."""
    return local_now(current_app.config["TIMEZONE"])
