"""Read-side views computed on demand."""
