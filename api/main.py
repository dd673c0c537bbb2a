import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import aerial, geocode, measurements, products, sessions
from api.services import storage

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(title="Roof Measure API", version="0.1.0")

default_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://localhost:8000",
]
cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", ",".join(default_origins)).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, object]:
    return {
        "service": "roof-measure",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health() -> dict[str, object]:
    root = storage.MEASUREMENTS.root
    return {
        "status": "ok",
        "geocoder_configured": bool(os.getenv("GOOGLE_MAPS_API_KEY")),
        "storage": {
            "path": str(root),
            "exists": root.exists(),
            "writable": os.access(root, os.W_OK) if root.exists() else False,
        },
        "sessions": len(sessions.SESSIONS),
    }


app.include_router(geocode.router, prefix="/geocode", tags=["geocode"])
app.include_router(aerial.router, prefix="/aerial-image", tags=["aerial-image"])
app.include_router(measurements.router, prefix="/measurements", tags=["measurements"])
app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
