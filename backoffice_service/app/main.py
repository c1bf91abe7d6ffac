# --- Imports ---
from fastapi import FastAPI

# Internal imports from sibling modules
from .database import engine
from .models import Base
from .errors import register_exception_handlers
from .loggers import get_logger
from .routers import customers, invoices, orders, products, quotes, shipments

logger = get_logger(__name__)

# --- Database Initialization ---
# Create database tables defined in models.py if they don't exist
Base.metadata.create_all(bind=engine)

# --- App Instance ---
app = FastAPI(title="Print Shop Back-Office API")
register_exception_handlers(app)

for module in (customers, products, quotes, invoices, orders, shipments):
    app.include_router(module.router)


# --- Endpoints ---
@app.get("/")
def root():
    """Health check endpoint to confirm the back-office service is operational."""
    return {"message": "Back-office service is running"}


@app.get("/health")
def health():
    return {"status": "ok"}


logger.info("Back-office service initialised")
