"""Mock factories shared across the test suite."""
