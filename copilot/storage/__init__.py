"""Object storage routing: candidate prefixes, probing and listing."""
