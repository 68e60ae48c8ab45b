"""
High-level use cases for the Shopfront API.

Each service module orchestrates repositories/adapters to implement business
rules (login, reset password with a one-time code, create a record with
images, soft delete, etc.).

Routers (FastAPI endpoints) call these services instead of touching the
database session or the image store directly.
"""
