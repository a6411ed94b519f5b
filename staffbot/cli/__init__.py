"""CLI module for staffbot."""
