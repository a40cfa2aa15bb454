"""Management API resources for tracked repositories."""
