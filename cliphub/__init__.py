"""Community video clip backend."""
