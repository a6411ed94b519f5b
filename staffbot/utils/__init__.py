"""Utility helpers for staffbot."""
