"""Remote synchronisation of the local store."""
