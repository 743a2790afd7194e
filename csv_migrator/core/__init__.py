"""Core domain logic: checksums, CSV chunking, field filtering, progress math."""
