"""
Services Package

Logic that is not tied to a single route or table:
- security.py: password hashing and CSRF tokens
- uploads.py: storing and removing book cover images
- rate_limiter.py: rate limiting with slowapi
"""
