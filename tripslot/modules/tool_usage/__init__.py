"""modules/tool_usage — collaborators the engine consults (transit, hotels)."""
