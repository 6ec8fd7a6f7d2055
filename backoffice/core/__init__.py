"""Core domain logic: configuration, security, access control and workflows."""
