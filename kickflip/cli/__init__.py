"""Command-line tools for operating a Kickflip deployment."""
