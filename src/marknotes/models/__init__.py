"""Data models for marknotes."""
