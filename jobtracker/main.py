"""
JobTracker - Main FastAPI Application
Job application tracking with lifecycle bookkeeping and dashboard analytics
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobtracker.dependencies import (
    build_ai,
    build_auth,
    build_store,
    get_ai,
    get_current_user_id,
    get_job_service,
    get_scraper,
)
from jobtracker.errors import InvalidInput, JobTrackerError
from jobtracker.models.activity import Activity
from jobtracker.models.job import JobCreate, JobStatus, JobUpdate, NoteCreate, StatusUpdate
from jobtracker.models.posting import AnalyzeRequest, JobDraft, ParsedJobPosting, ScrapeRequest
from jobtracker.models.stats import DashboardStats
from jobtracker.services.job_service import JobService
from jobtracker.services.scraper_service import ScraperService, parse_job_posting_html, strip_scripts

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # collaborators already placed on app.state (e.g. by tests) are kept
    if not hasattr(app.state, "store"):
        app.state.store = build_store()
    if not hasattr(app.state, "auth"):
        app.state.auth = build_auth()
    if not hasattr(app.state, "scraper"):
        app.state.scraper = ScraperService()
    if not hasattr(app.state, "ai"):
        app.state.ai = build_ai()
    logger.info(f"JobTracker started with {type(app.state.store).__name__}")
    yield


# Create FastAPI app
app = FastAPI(
    title="JobTracker",
    description="Job application tracking with status lifecycle and dashboard analytics",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =====================
# Error responses
# =====================
def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    for error in errors:
        message = str(error.get("msg", ""))
        if message.startswith("Value error, "):
            return message[len("Value error, "):]
        if error.get("type") == "enum" and "status" in error.get("loc", ()):
            return "Invalid status"
    if not errors:
        return InvalidInput.default_message
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


@app.exception_handler(JobTrackerError)
async def job_tracker_error_handler(request: Request, exc: JobTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": _validation_message(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Health check endpoint
@app.get("/")
async def root():
    return {"message": "JobTracker is running!", "status": "healthy"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "JobTracker"}


@app.get("/statuses")
async def list_statuses():
    """Pipeline statuses with display labels, in pipeline order"""
    return [{"value": s.value, "label": s.label, "description": s.description} for s in JobStatus]


# =====================
# Jobs endpoints
# =====================
@app.get("/jobs")
async def get_jobs(
    status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_direction: Optional[str] = Query(None, alias="sortDirection"),
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Get the caller's jobs, optionally filtered by status and search text"""
    return await jobs.list_jobs(user_id, status=status, search=search, sort_by=sort_by, sort_direction=sort_direction)


@app.post("/jobs", status_code=201)
async def create_job(
    job_data: JobCreate,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Create a new job entry"""
    return await jobs.create_job(user_id, job_data)


@app.post("/jobs/extract", response_model=JobDraft)
async def extract_job(
    request_data: ScrapeRequest,
    user_id: str = Depends(get_current_user_id),
    scraper: ScraperService = Depends(get_scraper),
    ai=Depends(get_ai),
):
    """Prefill a job from its posting URL; nothing is saved"""
    page = await scraper.fetch_page(request_data.url)
    if ai is not None:
        posting = await ai.analyze_job_posting(strip_scripts(page), request_data.url)
    else:
        posting = parse_job_posting_html(page)
    logger.info(f"Extracted job draft for user {user_id} from {request_data.url}")
    return posting.to_job_draft(request_data.url.strip())


@app.get("/jobs/{job_id}")
async def get_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Get a specific job by ID"""
    return await jobs.get_job(user_id, job_id)


@app.put("/jobs/{job_id}")
async def update_job(
    job_id: str,
    job_update: JobUpdate,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Update fields of a job"""
    return await jobs.update_job(user_id, job_id, job_update)


@app.delete("/jobs/{job_id}")
async def delete_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Delete a job"""
    await jobs.delete_job(user_id, job_id)
    return {"message": "Job deleted successfully"}


@app.put("/jobs/{job_id}/status")
async def update_job_status(
    job_id: str,
    status_update: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Move a job through the pipeline"""
    return await jobs.update_status(user_id, job_id, status_update.status)


@app.post("/jobs/{job_id}/notes")
async def add_job_note(
    job_id: str,
    note_data: NoteCreate,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Append a timestamped note to a job"""
    return await jobs.add_note(user_id, job_id, note_data.note)


# =====================
# Dashboard endpoints
# =====================
@app.get("/dashboard/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    monthly: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Derived statistics over all of the caller's jobs"""
    return await jobs.dashboard_stats(user_id, monthly=monthly)


@app.get("/activities", response_model=List[Activity])
async def get_activities(
    limit: int = 10,
    user_id: str = Depends(get_current_user_id),
    jobs: JobService = Depends(get_job_service),
):
    """Most recent activity entries, newest first"""
    return await jobs.recent_activities(user_id, limit=limit)


# =====================
# Job posting import endpoints
# =====================
@app.post("/scrape-url")
async def scrape_url(
    request_data: ScrapeRequest,
    user_id: str = Depends(get_current_user_id),
    scraper: ScraperService = Depends(get_scraper),
):
    """Fetch a posting page with scripts removed"""
    return {"content": await scraper.scrape(request_data.url)}


@app.post("/analyze-job", response_model=ParsedJobPosting)
async def analyze_job(
    request_data: AnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    ai=Depends(get_ai),
):
    """Extract structured job details from page content"""
    if not request_data.content:
        raise InvalidInput("Content is required")
    if ai is None:
        return parse_job_posting_html(request_data.content)
    return await ai.analyze_job_posting(request_data.content, request_data.url)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "jobtracker.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
