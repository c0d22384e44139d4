"""
Development server for the FacturaHN API.

Usage:
    python3 run.py                       # development (default)
    FLASK_ENV=production python3 run.py
    PORT=8080 python3 run.py

Settings are read from the environment; a local ``.env`` file is loaded
first if present.
"""

import os

from dotenv import load_dotenv

load_dotenv()

from facturahn import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", 5000)),
        debug=app.config.get("DEBUG", False),
    )
