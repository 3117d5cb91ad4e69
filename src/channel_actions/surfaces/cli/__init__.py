"""Typer command-line surface."""
