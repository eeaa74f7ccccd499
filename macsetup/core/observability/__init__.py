"""Observability — diagnostic logging and the run transcript."""
