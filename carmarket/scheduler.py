from apscheduler.schedulers.background import BackgroundScheduler
from .utils import logger

scheduler = BackgroundScheduler()

def start_scheduler(store, minutes: int):
    scheduler.add_job(store.reconcile, 'interval', minutes=minutes, id="reconcile", replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started, reconciling every %d min", minutes)

def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
