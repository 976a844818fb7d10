import os
import traceback
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from app.database import Database
from app.services.auth.identity import FirebaseIdentityVerifier
from app.services.payment.gateways.factory import PaymentGatewayFactory
from app.routes.auth.user_routes import router as user_router
from app.routes.auth.creator_request_routes import router as creator_request_router
from app.routes.contest.contest_routes import router as contest_router
from app.routes.contest.admin_routes import router as contest_admin_router
from app.routes.contest.submission_routes import router as submission_router
from app.routes.payment.payment_routes import router as payment_router
from app.utils.errors import ContestHubError, InternalFailure
from app.utils.response import error_response, validation_error_response

# Load environment variables
load_dotenv()

# Get environment variables
APP_NAME = os.getenv("APP_NAME", "ContestHub")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
CLIENT_DOMAIN = os.getenv("CLIENT_DOMAIN", "http://localhost:5173")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for the application"""
    # Startup
    await Database.connect_db()

    app.state.identity_verifier = FirebaseIdentityVerifier()
    try:
        app.state.payment_gateway = PaymentGatewayFactory.create_gateway()
    except ValueError as e:
        print(f"[WARN] Payments disabled: {e}")
        app.state.payment_gateway = None

    yield
    # Shutdown
    if app.state.payment_gateway is not None:
        await app.state.payment_gateway.close()
    await app.state.identity_verifier.close()
    await Database.close_db()


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="ContestHub API: contests, paid registrations, submissions and winners",
    lifespan=lifespan
)

# CORS middleware
# In development, allow all origins for easier testing
DEBUG = os.getenv("DEBUG", "True").lower() == "true"

cors_origins = [
    CLIENT_DOMAIN,
    "http://localhost:5173",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if not DEBUG else ["*"],
    allow_credentials=not DEBUG,  # Can't use credentials with wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ContestHubError)
async def contest_hub_error_handler(request: Request, exc: ContestHubError):
    return error_response(message=exc.message, status_code=exc.status_code, kind=exc.kind)


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    print(f"[ERROR] Storage failure on {request.method} {request.url.path}: {exc}")
    traceback.print_exc()
    failure = InternalFailure()
    return error_response(message=failure.message, status_code=failure.status_code, kind=failure.kind)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {".".join(str(part) for part in err["loc"]): err["msg"] for err in exc.errors()}
    return validation_error_response(errors=errors)


# Include routers with /api prefix
app.include_router(user_router, prefix="/api")
app.include_router(creator_request_router, prefix="/api")
app.include_router(contest_router, prefix="/api")
app.include_router(contest_admin_router, prefix="/api")
app.include_router(submission_router, prefix="/api")
app.include_router(payment_router, prefix="/api")


@app.get("/")
async def read_root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {APP_NAME} API",
        "version": APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
