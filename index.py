import os
import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.billing import router as billing_router
from routes.cart import router as cart_router
from routes.checkout import router as checkout_router
from routes.dashboard import router as dashboard_router
from routes.referrals import router as referrals_router
from routes.bot import router as bot_router

from auth.session_gate import SignInRequired
from config.app_config import CLIENT_STORAGE_DIR, FRONTEND_URL, TAX_RATE
from config.plan_catalog import PLAN_CATALOG
from services.errors import StorefrontError


# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(os.getenv("LOG_FILE", "rollwithdraw.log"))
    ]
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="RollWithdraw Backend",
    description="Storefront for RollWithdraw licences: cart, checkout, dashboard and account",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(billing_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(dashboard_router)
app.include_router(referrals_router)
app.include_router(bot_router)


@app.exception_handler(SignInRequired)
async def sign_in_required_handler(request: Request, exc: SignInRequired):
    """Protected views answer with where to go instead of a bare 401."""
    return JSONResponse(status_code=401, content=exc.to_response_body())


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    os.makedirs(CLIENT_STORAGE_DIR, exist_ok=True)
    logger.info("✅ RollWithdraw Backend started successfully")
    logger.info(f"✅ Client storage: {CLIENT_STORAGE_DIR}")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "RollWithdraw Backend API",
        "version": "1.0.0",
        "plans": list(PLAN_CATALOG.keys()),
        "tax_rate": TAX_RATE,
        "endpoints": {
            "health": "/health",
            "plans": "/plans",
            "cart": "/cart",
            "checkout": "/checkout",
            "dashboard": "/dashboard",
            "auth": "/auth",
            "users": "/users",
            "referrals": "/referrals",
            "bot": "/bot"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
