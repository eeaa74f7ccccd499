"""Reliability — retries, network gating and privilege keep-alive."""
