"""Model object types and their inclusion handlers."""
