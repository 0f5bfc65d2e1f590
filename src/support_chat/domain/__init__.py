"""Domain entities, ports and port-level errors."""
