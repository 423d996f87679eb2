import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.cache import PermissionCache
from app.core.config import CORS_ALLOW_ORIGINS, FIREBASE_WEB_CONFIG, LOG_LEVEL, PERMISSION_CACHE_TTL_SECONDS
from app.core.errors import InternalErrorMiddleware, register_exception_handlers

# Import Routers
from app.api.v1.endpoints import (
    admin, admin_schemes, admin_staff, auth, cards, profile, rbac, referral, schemes,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


# (router, prefix, tag) for every versioned API router
API_ROUTERS = [
    (auth.router, "/api/v1/auth", "Auth"),
    (profile.router, "/api/v1/profile", "Profile"),
    (cards.router, "/api/v1/cards", "Cards"),
    (schemes.router, "/api/v1/schemes", "Schemes"),
    (referral.router, "/api/v1/referral", "Referral"),
    (rbac.router, "/api/v1/rbac", "RBAC"),
    (admin.router, "/api/v1/admin", "Admin"),
    (admin_schemes.router, "/api/v1/admin", "Admin: Schemes"),
    (admin_staff.router, "/api/v1/admin", "Admin: Staff"),
]


# CSP: the API serves JSON only
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response


def create_app(permission_cache: PermissionCache = None) -> FastAPI:
    app = FastAPI(
        title="Akshayapatra Platform",
        description="Savings and rewards platform API",
    )

    # Process-wide; role changes and bans invalidate entries explicitly
    app.state.permission_cache = permission_cache or PermissionCache(PERMISSION_CACHE_TTL_SECONDS)

    # --- 1. SECURITY & MIDDLEWARE ---
    app.add_middleware(InternalErrorMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials="*" not in CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # --- 2. API ROUTES ---
    for router, prefix, tag in API_ROUTERS:
        app.include_router(router, prefix=prefix, tags=[tag])

    # Serve Frontend Config Dynamically
    @app.get("/api/v1/config")
    async def get_frontend_config():
        """Returns public Firebase config from environment variables."""
        return FIREBASE_WEB_CONFIG

    @app.get("/health")
    async def health():
        return {"status": "online"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
