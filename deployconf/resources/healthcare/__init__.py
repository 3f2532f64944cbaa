"""Cloud Healthcare resource kinds."""
