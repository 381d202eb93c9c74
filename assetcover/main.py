"""
Main FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from assetcover.db import initialize_database
from assetcover.errors import AssetCoverError
from assetcover.routers import policies, claims, assets, prices, quotes, admin
from assetcover.middleware import PerformanceMiddleware
from assetcover.cache import config_cache
import logging

logger = logging.getLogger("assetcover")

app = FastAPI(
    title="AssetCover API",
    description="Parametric cover for digital assets: policies, claims and oracle-aware pricing",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(PerformanceMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssetCoverError)
async def protocol_error_handler(request: Request, exc: AssetCoverError):
    """Render protocol failures as tagged JSON errors."""
    logger.info(
        f"Operation rejected | path={request.url.path} | code={exc.code} | kind={exc.kind}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event():
    """Initialize database and warm up the config cache on startup."""
    logger.info("Starting AssetCover API...")

    config = config_cache.get_protocol_config()
    initialize_database()
    logger.info(
        f"Protocol ready | owner={config['owner']} | "
        f"native={config_cache.get_native_asset()['symbol']} | "
        f"seed_assets={len(config_cache.get_seed_data().get('assets', []))}"
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "AssetCover API", "status": "healthy"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# Include all routers
app.include_router(policies.router, prefix="/v1", tags=["policies"])
app.include_router(claims.router, prefix="/v1", tags=["claims"])
app.include_router(assets.router, prefix="/v1", tags=["assets"])
app.include_router(prices.router, prefix="/v1", tags=["prices"])
app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
app.include_router(admin.router, prefix="/v1", tags=["admin"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
