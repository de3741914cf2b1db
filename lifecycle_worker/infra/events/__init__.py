"""Account lifecycle event publishing."""
