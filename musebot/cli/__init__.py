"""CLI module for musebot."""
