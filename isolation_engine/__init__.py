"""Isolation state and test-result merge engine."""
