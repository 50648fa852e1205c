import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lessonroom.config import get_settings
from lessonroom.core.database import dispose_db_engine
from lessonroom.core.logging import _initialize_logging
from lessonroom.notifications.registry import ConnectionRegistry
from lessonroom.notifications.service import BroadcastService
from lessonroom.storage.factory import build_document_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, the document store and the realtime registry for the process."""
  settings = get_settings()
  logger = logging.getLogger("lessonroom.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except RuntimeError:
    # A broken log directory must not keep the service from starting.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  app.state.store = build_document_store(settings)
  app.state.registry = ConnectionRegistry()
  app.state.broadcaster = BroadcastService(app.state.registry)
  logger.info("Store backend=%s master_teacher=%s", settings.store_backend, settings.master_teacher)

  try:
    yield
  finally:
    await app.state.broadcaster.drain()
    await dispose_db_engine()
    logger.info("Shutdown complete.")
