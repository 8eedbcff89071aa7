"""Command-line front end for asciicam."""
