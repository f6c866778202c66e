"""miniwallet.cli - command-line entry point."""
