"""
CLI layer - Typer commands for searching slots from the terminal.
"""
