"""HTTP layer for the back-office API."""
