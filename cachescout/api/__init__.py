"""API module - FastAPI application and WebSocket event stream."""
