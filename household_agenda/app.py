from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import AGENDA_DATA_FILE, AGENDA_STORE_URL, cors_origins
from .engine.orchestrator import AgendaService
from .remote_store import RemoteDocumentStore
from .routes import router
from .state import InMemoryStore, ScheduleStore
from .utils import Clock, SystemClock

logger = logging.getLogger(__name__)


def default_store() -> ScheduleStore:
  if AGENDA_STORE_URL:
    logger.info("Using remote document store at %s", AGENDA_STORE_URL)
    return RemoteDocumentStore(AGENDA_STORE_URL)
  return InMemoryStore(AGENDA_DATA_FILE or None)


def create_app(store: Optional[ScheduleStore] = None,
               clock: Optional[Clock] = None) -> FastAPI:
  app = FastAPI(title="Household Agenda")
  if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
  app.state.store = store if store is not None else default_store()
  app.state.clock = clock or SystemClock()
  app.state.service = AgendaService(app.state.store, clock=app.state.clock)
  app.include_router(router)
  return app
