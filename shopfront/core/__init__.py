"""
Core utilities shared across the Shopfront API.

This package hosts:
- configuration helpers (env vars, paths, token/OTP windows)
- cross-cutting services such as logging, the error taxonomy and its
  HTTP responder, the email dispatcher, the image store and rate limit helpers.

Routers and services depend on these primitives instead of reading os.environ
or talking to SMTP/disk directly.
"""
