"""Application services operating on an injected database session."""
