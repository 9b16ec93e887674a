from fastapi import FastAPI
from carmarket.api.deps import get_store
from carmarket.api.routes import router as api_router
from carmarket.config import SYNC_INTERVAL_MINUTES
from carmarket.scheduler import start_scheduler, stop_scheduler
from carmarket.utils import logger

# create FastAPI instance
app = FastAPI(title="carmarket")
app.include_router(api_router)


@app.on_event("startup")
def on_startup_start_reconcile():
    if SYNC_INTERVAL_MINUTES > 0:
        start_scheduler(get_store(), SYNC_INTERVAL_MINUTES)
    else:
        logger.info("Periodic reconcile disabled")


@app.on_event("shutdown")
def on_shutdown_stop_reconcile():
    stop_scheduler()
