"""Local stand-ins for the external systems the order service talks to."""
