"""HTTP clients for the external services the pipeline talks to."""
