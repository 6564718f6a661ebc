import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.middleware.exceptions import register_exception_handlers
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.security import SecurityHeadersMiddleware
from app.middleware.session import SessionMiddleware
from app.routers import drafts, health, quotes
from app.services.scheduler import lifespan

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Quote Wizard",
    description="Custom 3D printing quote wizard: drafts, resume links and quote intake",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (last added runs outermost) ───────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    RateLimitMiddleware,
    default_limit=100,  # 100 requests per minute per IP
    default_window=60,
    exempt_paths=["/health", "/health/ready", "/docs", "/openapi.json"],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Anonymous session (outermost - every response can carry the cookie)
app.add_middleware(SessionMiddleware)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(drafts.router, prefix="/api/custom/draft", tags=["drafts"])
app.include_router(quotes.router, prefix="/custom", tags=["quotes"])
