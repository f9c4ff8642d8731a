"""HTTP entry point for the cart service."""
