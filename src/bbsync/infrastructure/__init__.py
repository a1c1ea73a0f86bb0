"""Infrastructure layer: persistence, HTTP client, notifications, observability."""
