"""Helpers used by the HTTP layer: rate limiting, uploads, Google OAuth."""
