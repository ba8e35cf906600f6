"""Infrastructure layer: stores and upstream adapters."""
