"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ranger_standings.config import settings
from ranger_standings.api.routes.ranger import router as ranger_router
from ranger_standings.repositories.match_result_repository import MatchResultRepository
from ranger_standings.services.fee_gate import InMemoryWallet
from ranger_standings.services.vision_client import get_extraction_client


# Database path - relative paths resolve from the repo root
def get_database_path() -> Path:
    """Get the match result store path from settings."""
    db_path = Path(settings.database_path)
    if db_path.is_absolute():
        return db_path
    repo_root = Path(__file__).parent.parent.parent.parent
    return repo_root / settings.database_path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup: tests may pre-populate app.state with their own collaborators
    if not hasattr(app.state, "settings"):
        app.state.settings = settings
    if not hasattr(app.state, "repository"):
        app.state.repository = MatchResultRepository(get_database_path())
    if not hasattr(app.state, "extraction_client"):
        app.state.extraction_client = get_extraction_client(
            settings.vision_api_key,
            enabled=settings.enable_vision,
            model=settings.vision_model,
            api_url=settings.vision_api_url,
            timeout=settings.vision_timeout,
        )
    if not hasattr(app.state, "wallet"):
        app.state.wallet = InMemoryWallet(starting_balance=settings.starting_wallet_balance)
    yield
    # Shutdown: close the vision HTTP client
    close = getattr(app.state.extraction_client, "close", None)
    if close is not None:
        await close()


app = FastAPI(
    title="Ranger Standings",
    description="Esports tournament standings from match result screenshots",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "ranger-standings"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Ranger Standings API",
        "version": "0.1.0",
        "docs": "/docs",
    }


# Register routers
app.include_router(ranger_router)
