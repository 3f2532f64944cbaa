"""Cloud Storage resource kinds."""
