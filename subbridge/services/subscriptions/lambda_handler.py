"""Serverless entrypoint wrapping the FastAPI app with the Mangum adapter.

Each invocation is handled independently; nothing is kept between calls
beyond the process-wide app and settings.
"""

from mangum import Mangum

from subbridge.services.subscriptions.main import app

handler = Mangum(app, lifespan="off")


def lambda_handler(event: dict, context: object) -> dict:
    """Translate one API Gateway event into an ASGI request and back."""

    return handler(event, context)
