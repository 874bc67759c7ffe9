"""
KuCoin Trading - HTTP Gateway.

============================================================
PURPOSE
============================================================
Single POST endpoint taking {"action", "orderData"} and
returning the dispatcher's JSON response. Browser clients
are allowed via CORS.

STATUS CODES:
- 200  success
- 400  validation error / unknown action
- 500  configuration error (missing credentials)
- 502  exchange rejected, or transport failure

============================================================
USAGE
============================================================
uvicorn kucoin_trading.api:create_app --factory --port 8000

============================================================
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .client import KucoinClient
from .config import TradingConfig
from .dispatch import ActionDispatcher
from .errors import ConfigurationError, ValidationError
from .schemas import HealthResponse, TradingRequest


logger = logging.getLogger(__name__)


def build_client(config: TradingConfig) -> KucoinClient:
    """
    Client for the gateway.

    Incomplete credentials give an unauthenticated client, so
    public market data still works and private actions fail
    with a configuration error per request.
    """
    credentials = config.credentials
    if credentials is not None and credentials.missing_fields():
        logger.warning(
            f"KuCoin credentials incomplete ({', '.join(credentials.missing_fields())}); "
            f"only public actions are available"
        )
        credentials = None
    return KucoinClient(credentials=credentials, config=config.client)


def create_app(
    config: Optional[TradingConfig] = None,
    client: Optional[KucoinClient] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        config: Configuration (default: from environment)
        client: Pre-built client (default: built from config)
    """
    config = config or TradingConfig.from_env()
    owns_client = client is None
    client = client or build_client(config)
    dispatcher = ActionDispatcher(client, config.symbols)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.close()

    app = FastAPI(
        title="KuCoin Trading Gateway",
        description="Signed order placement and market data for KuCoin spot.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS (browser frontends call the gateway directly)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            status="ok",
            authenticated=client.is_authenticated,
            actions=dispatcher.actions,
            metrics=client.metrics.get_summary(),
        )

    @app.post("/kucoin-trading")
    async def kucoin_trading(request: TradingRequest):
        try:
            result = await dispatcher.dispatch(request.action, request.action_data())
        except ValidationError as e:
            logger.info(f"Rejected {request.action} request: {e.message}")
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "kind": "validation",
                    "error": e.message,
                    "field": e.field,
                },
            )
        except ConfigurationError as e:
            logger.error(f"Configuration error on {request.action}: {e.message}")
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "kind": "configuration",
                    "error": e.message,
                },
            )

        return JSONResponse(
            status_code=200 if result.get("success") else 502,
            content=result,
        )

    app.state.dispatcher = dispatcher
    app.state.client = client
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("kucoin_trading.api:create_app", factory=True, host="0.0.0.0", port=8000)
