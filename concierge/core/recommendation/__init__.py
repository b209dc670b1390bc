"""Provider scoring and top-3 recommendations."""
