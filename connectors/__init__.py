"""
connectors — OAuth integration for external accounts (GitHub).

Handles:
  • OAuth2 authorize-URL generation with a cookie-bound state
  • Callback handling (code → token exchange → identity lookup)
  • AES-256-GCM encryption of tokens at rest, with legacy plaintext fallback
  • Per-user connection storage
  • Best-effort revocation on disconnect
"""
