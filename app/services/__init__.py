"""Remote clients and orchestration services."""
