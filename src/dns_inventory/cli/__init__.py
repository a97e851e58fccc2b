"""Command line interfaces."""
