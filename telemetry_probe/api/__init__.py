"""HTTP surface: app factory, routes and response models."""
