"""docsync: incremental documentation → vector-embedded section sync."""
