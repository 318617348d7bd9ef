"""
Service layer.

Each service encapsulates the business logic and SQL for one domain.
Services raise ``ValueError`` (or a subclass) for invalid operations
and return ``None`` for missing records; the endpoints translate both
into HTTP errors.
"""
