"""Backup adapters: spreadsheet export and remote connectivity."""
