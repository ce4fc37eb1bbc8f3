"""FastAPI application for workspace provisioning and billing."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health
from api.routes.v1 import (
    workspaces_router,
    billing_router,
    webhook_router,
    users_router,
)
from api.middleware import RequestContextMiddleware
from api.error_handlers import register_error_handlers
from clinicdesk.config import APP_URL

app = FastAPI(
    title="Clinicdesk Workspace API",
    description="Workspace provisioning and subscription lifecycle",
    version="1.0.0",
)

# Middleware is added in reverse order of execution: CORS -> RequestContext -> Route
app.add_middleware(RequestContextMiddleware)

# CORS for the web app (outermost - handles preflight requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[APP_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global error handlers
register_error_handlers(app)

app.include_router(health.router, prefix="/api", tags=["health"])

# v1 routes
app.include_router(workspaces_router, prefix="/api", tags=["workspaces"])
app.include_router(billing_router, prefix="/api", tags=["billing"])
app.include_router(webhook_router, prefix="/api", tags=["stripe-webhooks"])
app.include_router(users_router, prefix="/api", tags=["users"])
