"""
Application package initializer.

The project is split into ``core`` (configuration, database, security,
logging), ``schemas`` (Pydantic models), ``services`` (business logic)
and ``api`` (versioned FastAPI routers).  Each marketplace domain
(auth, profiles, conversations, service requests, payments, feedback)
has its own schema, service and endpoint module.
"""

from .main import app  # noqa: F401
