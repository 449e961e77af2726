"""Tool-call aggregation and pagination layer over the OWASP Nest API."""
