"""HTTP surface for the topic graph."""
