"""EXCO nomination service: voter roster, single-ballot submission, name deduplication and tallies."""
