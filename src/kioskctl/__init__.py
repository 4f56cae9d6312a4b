"""Command line entry point for the kiosk."""
