"""Task Store - validated records for users, tasks, projects and tags."""

__version__ = "0.1.0"

# Re-export main components for easy access
# Note: CLI components imported on-demand to avoid dependency issues

__all__ = [
    "__version__",
]
