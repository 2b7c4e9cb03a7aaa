# archive_viewer/main.py

from fastapi import FastAPI, HTTPException
import logging
import uvicorn
from archive_viewer.core.config import ApplicationConfig
from archive_viewer.core.version import VERSION
from archive_viewer.routes import router
from archive_viewer.core.state import app_state

config = ApplicationConfig.from_env()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(config.log_file),
        logging.StreamHandler()
    ]
)

# Initialize FastAPI app
app = FastAPI(
    title="Archive Viewer",
    version=VERSION,
    description="Read-only API over a post-archiver archive"
)

# Include router
app.include_router(router)

@app.get("/api/health")
async def health_check():
    if not app_state.is_ready():
        raise HTTPException(status_code=503, detail="Archive not open")
    return {"status": "healthy"}

@app.on_event("startup")
async def startup_event():
    try:
        await app_state.initialize(config)
    except Exception as e:
        logging.error(f"Startup failed: {e}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    await app_state.shutdown()

def run():
    uvicorn.run(app, host=config.host, port=config.port)
