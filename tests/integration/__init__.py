"""Integration tests: real child processes driven over stdio."""
