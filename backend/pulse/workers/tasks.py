import asyncio
import logging

from pulse.models.base import build_engine, build_session_maker
from pulse.workers.celery_app import celery_app
from pulse.services.pipeline import analyze_response_safely

logger = logging.getLogger(__name__)

worker_engine = build_engine(per_task=True)
WorkerSession = build_session_maker(worker_engine)


async def _analyze(response_id: int, response_text: str) -> dict:
    async with WorkerSession() as db:
        record = await analyze_response_safely(db, response_id, response_text)
    if record is None:
        return {"success": False, "response_id": response_id}
    return {
        "success": True,
        "response_id": response_id,
        "sentiment": record.sentiment,
        "confidence": record.confidence,
    }


@celery_app.task(name="pulse.workers.tasks.analyze_response_sentiment")
def analyze_response_sentiment(response_id: int, response_text: str):
    """Background variant of the inline sentiment path used during submission."""
    logger.info("Worker analyzing sentiment for response %s", response_id)
    return asyncio.run(_analyze(response_id, response_text))
