"""
Web application package for the chess coach engine.

Provides a FastAPI-based REST API over CoachEngine: engine moves by tier,
move quality analysis, position evaluation and coaching feedback. Run with
``uvicorn web.app:app``.
"""
