"""Services: store, migration, materialization, reconciliation and sync."""
