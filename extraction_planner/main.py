import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from extraction_planner.config import settings
from extraction_planner.routes import extraction_router
from extraction_planner.rule_table import build_default_rule_table
from extraction_planner.services import DocumentValueExtractionService, mongo_service

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    rule_table = build_default_rule_table(settings.rule_table_version)
    await mongo_service.connect()
    app.state.extraction_service = DocumentValueExtractionService(mongo_service, rule_table)
    logger.info(f"Extraction planner ready, rule table {rule_table.version}")
    yield
    # Shutdown
    await mongo_service.close()
    logger.info("Disconnected from MongoDB")


app = FastAPI(
    title=settings.app_name,
    description="Plans which values to extract from which uploaded documents of a subsidy application",
    version=settings.app_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(extraction_router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} is running", "version": settings.app_version}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    database = "connected" if await mongo_service.health_check() else "disconnected"
    return {"status": "healthy", "service": "extraction-planner", "database": database}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("extraction_planner.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
