"""Commerce FastAPI application.

Commands are processed synchronously inside each request, under the commerce
domain context pushed by the app's middleware.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml:
#   - unset/"test" → in-memory database
#   - "production" → PostgreSQL at DATABASE_URL
from commerce.api.app import create_app
from commerce.domain import commerce
from commerce.utils.logging import configure_logging

configure_logging()
commerce.init()

app = create_app(commerce)
