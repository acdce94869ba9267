"""FastAPI application - serves the fill detection API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fillscan.api.fills import router as fills_router

app = FastAPI(title="Fillscan", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(fills_router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok"}


def run():
    import uvicorn
    from fillscan.config import settings
    uvicorn.run(
        "fillscan.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
