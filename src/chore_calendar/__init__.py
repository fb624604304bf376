"""
Household chore calendar backend.

The FastAPI application lives in ``chore_calendar.main`` (``app`` or
``create_app()``). It is not imported here so that the scheduler, comment
pipeline and storage modules can be used without building an app.
"""

__version__ = "0.1.0"
