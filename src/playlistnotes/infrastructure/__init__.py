"""Infrastructure layer: HTTP transport, provider adapters, observability."""
