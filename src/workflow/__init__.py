"""Launcher-side glue: command line and background batch trigger."""
