"""CLI-команды butler."""
