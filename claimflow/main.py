"""
Lecturer Claims Approval System

FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from claimflow import __version__
from claimflow.api import auth_router, claims_router, reports_router, review_router, users_router
from claimflow.api.deps import get_services
from claimflow.config import get_settings
from claimflow.core.errors import ClaimFlowError, ErrorType

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# HTTP status returned for each workflow outcome
STATUS_CODES = {
    ErrorType.UNAUTHORIZED: 403,
    ErrorType.INVALID_TRANSITION: 409,
    ErrorType.VALIDATION_ERROR: 422,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.PRECONDITION_FAILED: 412,
    ErrorType.STORAGE_FAILURE: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    logger.info("Starting Lecturer Claims Approval System")
    services = get_services()
    settings = services.settings
    services.users.ensure_bootstrap_hr(settings.bootstrap_hr_email, settings.bootstrap_hr_password)
    yield
    logger.info("Shutting down Lecturer Claims Approval System")


# Create FastAPI application
app = FastAPI(
    title="Lecturer Claims Approval System",
    description="""
    Lecturers submit monthly claims for hours worked; the claims move through a fixed approval chain.

    ## Workflow

    - **Submitted**: created by a lecturer with a supporting document; the amount is hours x hourly rate
    - **ApprovedByCoordinator**: approved by a programme coordinator
    - **Paid**: approved by an academic manager
    - **Rejected**: rejected with a reason at either review stage

    A claim can only be edited or deleted by its owner while it is Submitted.
    HR manages accounts and exports reports of paid claims.
    """,
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClaimFlowError)
async def claimflow_error_handler(request: Request, exc: ClaimFlowError) -> JSONResponse:
    """Turn a workflow error into a JSON response. Nothing has been written at this point."""
    status_code = STATUS_CODES.get(exc.error_type, 400)
    if exc.error_type == ErrorType.STORAGE_FAILURE:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} refused: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Include routers
app.include_router(auth_router)
app.include_router(claims_router)
app.include_router(review_router)
app.include_router(users_router)
app.include_router(reports_router)


@app.get("/", tags=["root"])
async def root():
    """Root endpoint with system info."""
    return {
        "system": "Lecturer Claims Approval System",
        "version": __version__,
        "status": "operational",
        "docs": "/docs"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
