"""Adapters connecting the core to Jetstream, the handle directory, SQLite, and the terminal."""
