"""HTTP API for the lead pipeline."""
