"""Freelance back office API."""
