"""SSE Inspector test suite."""
