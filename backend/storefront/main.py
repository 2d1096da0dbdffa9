"""
# `storefront/main.py` — Application entry point

Creates the FastAPI app, configures logging and CORS, and mounts the routers.

**Public routers:**
- `/auth`

**Admin routers (prefix `/admin`):**
- `/bookings` — protected with `get_current_admin`

On shutdown every open booking board unsubscribes from Firestore.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import settings
from storefront.core.security import get_board_registry
from storefront.routers import admin_bookings, auth

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Storefront Booking API",
    description="Backend API for the shop booking app and its admin booking board.",
    version="1.0.0",
    debug=settings.debug,
    redirect_slashes=False,
)

# Configure CORS (allow front-end domain or all origins as specified)
allow_origins = [origin.strip() for origin in settings.allowed_origins.split(',')] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin_bookings.admin_router, prefix="/admin")


@app.on_event("shutdown")
async def _close_boards():
    get_board_registry().close_all()


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
