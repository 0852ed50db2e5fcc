"""relay command-line interface (typer + rich)."""
