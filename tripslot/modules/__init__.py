"""modules — engine components, one sub-package per concern."""
