"""
auth — reading the authenticated user for protected routes.

Provides:
  • signed session token creation & verification
  • ``get_optional_user_id`` FastAPI dependency
"""
