"""
FastAPI sensor monitoring service.

Provides REST API for:
- POST /readings, POST /readings/batch, GET /readings
- GET/PUT /thresholds, GET /thresholds/history
- GET/POST /notifications
- GET /health
"""

from src.api.app import create_app

__all__ = ["create_app"]
