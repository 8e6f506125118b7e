"""Integration tests for the global barrier follower."""
