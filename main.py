"""
Function entrypoint.

The hosting platform invokes `handler(event, context)` for every request;
Mangum translates the event into an ASGI request for the lazily
initialized application. Locally the same app runs under uvicorn:

    uvicorn main:app --reload
"""

import logging

from dotenv import load_dotenv
from mangum import Mangum

from app.serverless import ServerlessApplication
from models import Settings

# Load environment variables
load_dotenv()
settings = Settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialization (database, routes, static files) happens on the first request
app = ServerlessApplication()

# Use "off": lifespan events would run initialization outside of a request
handler = Mangum(app, lifespan="off")
