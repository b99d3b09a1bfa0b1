"""SQLite record store for transactions and expenses."""
