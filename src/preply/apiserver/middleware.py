from fastapi.middleware.cors import CORSMiddleware

from preply.apiserver import flags


def setup(app):
    """Registers middleware with the FastAPI app."""
    # Credentialed CORS requests cannot use a wildcard origin, so the session cookie is only sent from listed origins.
    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_headers=["*"],
        allow_methods=["GET", "POST"],
        allow_origins=flags.ALLOWED_ORIGINS,
        max_age=7200,  # https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Access-Control-Max-Age
    )
