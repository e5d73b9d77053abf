"""
Command-line interface: Typer application, progress display and summary formatting.
"""
