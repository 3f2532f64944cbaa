"""Project-level IAM."""
