"""BigQuery resource kinds."""
