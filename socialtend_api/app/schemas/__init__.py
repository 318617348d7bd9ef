"""
Pydantic schema definitions for API payloads.

Each domain defines its own request and response models.  Schemas are
separate from the SQL in the services so the API representation does
not follow the table layout.
"""
