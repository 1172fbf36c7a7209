from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from activity_log.api.v1.router import api_router
from activity_log.core.config import settings
from activity_log.core.document_store import CosmosDocumentStore
from activity_log.core.identity_provider import GraphIdentityProvider
from activity_log.services.activity_service import ActivityService
from activity_log.services.employee_collections import CollectionResolver
from activity_log.services.employee_service import EmployeeService
from activity_log.services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    document_store = CosmosDocumentStore()
    identity_provider = GraphIdentityProvider()
    try:
        await document_store.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize CosmosDocumentStore, continuing without DB")
    try:
        await identity_provider.initialize(settings)
    except Exception:
        logger.exception("Failed to initialize GraphIdentityProvider, continuing without user directory")

    application.state.document_store = document_store
    application.state.identity_provider = identity_provider
    application.state.employee_service = EmployeeService(
        document_store,
        identity_provider,
        CollectionResolver(settings.EMPLOYEE_COLLECTION),
    )
    application.state.activity_service = ActivityService(document_store)
    application.state.feedback_service = FeedbackService(document_store)
    yield
    await document_store.close()
    await identity_provider.close()


app = FastAPI(
    title="Activity Log API",
    description="Employees, field activities and supervisor feedback",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Activity Log API"}
