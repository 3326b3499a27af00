"""Command-line interface for hub-bootstrap."""
