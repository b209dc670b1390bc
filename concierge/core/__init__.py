"""Domain logic: calling, research, recommendation and direct-task analysis."""
