"""Service layer for marknotes."""
