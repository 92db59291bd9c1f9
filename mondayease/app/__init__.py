"""MondayEase FastAPI application."""
