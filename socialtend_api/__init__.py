"""
Top-level package for the SocialTend API.

The package provides no public exports; all functionality lives in
submodules under ``app``.  Run the server with::

    uvicorn socialtend_api.app.main:app --reload
"""

__all__ = []
