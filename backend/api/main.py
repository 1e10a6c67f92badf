"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import deployments, health, subscriptions
from common.config import settings

app = FastAPI(
    title="Fargate Provisioner API",
    description="Checkpointed provisioning of ECS Fargate services",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(deployments.router, tags=["Deployments"])
app.include_router(subscriptions.router, tags=["Subscriptions"])
