"""Mock objects for crosskit tests."""
