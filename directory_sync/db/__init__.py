"""PostgreSQL persistence: connection, chunk upserts, record store, activity log."""
