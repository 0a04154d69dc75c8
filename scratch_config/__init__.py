"""Project schema and runtime settings for the scratch-card engine."""
