"""Application layer: job queue, batch processing and scheduling."""
