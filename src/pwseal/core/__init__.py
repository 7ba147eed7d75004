"""Core package of pwseal."""
