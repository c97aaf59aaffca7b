"""Ready-made connection providers for specific drivers."""
