"""
FastAPI application factory for the access relay.

The app holds no state of its own; everything lives on the
RuntimeContext stored at ``app.state.context``.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from accessledger import __version__
from accessledger.api.routes import invalid_request_handler, router
from accessledger.runtime import RuntimeContext


def create_app(context: RuntimeContext) -> FastAPI:
    app = FastAPI(title="AccessLedger Relay", version=__version__)
    app.state.context = context
    app.add_exception_handler(RequestValidationError, invalid_request_handler)
    app.include_router(router)
    return app
