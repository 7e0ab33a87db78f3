"""
App module for serverless deployment.

This module contains the lazily initialized FastAPI application, the admin
session subsystem and the Mangum-facing adapter (app.serverless).
"""

__all__ = ["auth", "bootstrap", "config", "errors", "middleware", "routes", "serverless", "static"]
