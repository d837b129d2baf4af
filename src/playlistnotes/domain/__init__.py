"""Domain layer: error codes, DTOs, ports and pure value-object helpers."""
