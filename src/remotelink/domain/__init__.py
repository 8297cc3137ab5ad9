"""Domain types and protocols shared across remotelink."""
