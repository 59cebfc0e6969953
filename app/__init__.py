"""Report query engine: tenant-scoped, declarative reporting over compliance entities."""
